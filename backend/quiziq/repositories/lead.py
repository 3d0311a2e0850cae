"""
Lead repository - insertion from the collector, listing and export.
"""
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.sql.elements import ColumnElement

from quiziq.models.lead import Lead
from quiziq.repositories.base import BaseRepository


class LeadRepository(BaseRepository[Lead]):
    """Repository for Lead model operations."""

    model = Lead

    async def append(self, lead: Lead) -> Lead:
        self.session.add(lead)
        await self.session.flush()
        return lead

    def _conditions(
        self,
        tracker_id: str,
        from_ts: Optional[int],
        to_ts: Optional[int],
        search: Optional[str] = None,
    ) -> list[ColumnElement]:
        conditions = [Lead.tracker_id == tracker_id]
        if from_ts is not None:
            conditions.append(Lead.ts >= from_ts)
        if to_ts is not None:
            conditions.append(Lead.ts <= to_ts)
        if search:
            # Wildcards in the term match literally
            escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            pattern = f"%{escaped}%"
            conditions.append(
                or_(
                    Lead.email.ilike(pattern, escape="\\"),
                    Lead.name.ilike(pattern, escape="\\"),
                    Lead.phone.ilike(pattern, escape="\\"),
                )
            )
        return conditions

    async def search(
        self,
        tracker_id: str,
        *,
        from_ts: Optional[int] = None,
        to_ts: Optional[int] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[list[Lead], int]:
        """
        Newest-first page of leads with free-text search over email, name and phone.
        Returns (leads, total_count) tuple.
        """
        conditions = self._conditions(tracker_id, from_ts, to_ts, search)

        count_stmt = select(func.count()).select_from(Lead).where(*conditions)
        total = (await self.session.execute(count_stmt)).scalar() or 0

        stmt = (
            select(Lead)
            .where(*conditions)
            .order_by(Lead.created_at.desc(), Lead.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def export(
        self,
        tracker_id: str,
        *,
        from_ts: Optional[int] = None,
        to_ts: Optional[int] = None,
    ) -> list[Lead]:
        """Every lead in range, oldest first."""
        stmt = (
            select(Lead)
            .where(*self._conditions(tracker_id, from_ts, to_ts))
            .order_by(Lead.created_at, Lead.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
