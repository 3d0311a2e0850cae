"""
Policy repository - the singleton limits row.
"""
from typing import Any

from sqlalchemy import insert as generic_insert
from sqlalchemy.dialects import postgresql, sqlite

from quiziq.core.config import settings
from quiziq.core.logging import get_logger
from quiziq.models.policy import POLICY_ROW_ID, Policy
from quiziq.repositories.base import BaseRepository

logger = get_logger(__name__)

UPDATABLE_FIELDS = frozenset({
    "max_trackers_per_user",
    "max_collect_rps_per_origin",
    "retention_days",
    "allowed_origins",
})


def default_policy_values() -> dict[str, Any]:
    return {
        "id": POLICY_ROW_ID,
        "max_trackers_per_user": settings.default_max_trackers_per_user,
        "max_collect_rps_per_origin": settings.default_max_collect_rps_per_origin,
        "retention_days": settings.default_retention_days,
        "allowed_origins": [],
    }


class PolicyRepository(BaseRepository[Policy]):
    """Read-mostly access to the global policy."""

    model = Policy

    async def ensure_default(self) -> None:
        """
        Insert the default row unless one exists.

        Uses INSERT .. ON CONFLICT DO NOTHING where the dialect has it, so
        several workers starting at once cannot race each other.
        """
        values = default_policy_values()
        dialect = self.dialect_name

        if dialect == "postgresql":
            stmt = postgresql.insert(Policy).values(**values).on_conflict_do_nothing(
                index_elements=[Policy.id]
            )
        elif dialect == "sqlite":
            stmt = sqlite.insert(Policy).values(**values).on_conflict_do_nothing(
                index_elements=[Policy.id]
            )
        else:
            if await self.session.get(Policy, POLICY_ROW_ID) is not None:
                return
            stmt = generic_insert(Policy).values(**values)

        result = await self.session.execute(stmt)
        if result.rowcount:
            logger.info("Default policy created", **{k: v for k, v in values.items() if k != "id"})

    async def get(self) -> Policy:
        """Current policy. Falls back to creating the default row."""
        policy = await self.session.get(Policy, POLICY_ROW_ID)
        if policy is None:
            await self.ensure_default()
            policy = await self.session.get(Policy, POLICY_ROW_ID)
        return policy

    async def update_fields(self, updates: dict[str, Any]) -> Policy:
        """Partial update from the administrative path."""
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown policy fields: {sorted(unknown)}")

        policy = await self.get()
        policy = await self.update(policy, updates)
        logger.info("Policy updated", fields=sorted(updates))
        return policy
