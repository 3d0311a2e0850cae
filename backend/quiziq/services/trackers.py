"""
Tracker registry - lifecycle, quota, access resolution and membership.

Reads come from the stats and export routes (``require_access``); writes
come from the tracker management routes and are limited to the owner or a
super admin.
"""
from typing import Any, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from quiziq.core.config import settings
from quiziq.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from quiziq.core.logging import get_logger
from quiziq.core.security import Principal, generate_tracker_id
from quiziq.models.tracker import MemberRole, Tracker, TrackerMember
from quiziq.repositories.policy import PolicyRepository
from quiziq.repositories.tracker import TrackerRepository
from quiziq.repositories.user import UserRepository
from quiziq.services.origins import extract_origin, is_origin_allowed

logger = get_logger(__name__)


class TrackerRegistry:
    """Service wrapping ``TrackerRepository`` with the authorization rules."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = TrackerRepository(session)
        self.policies = PolicyRepository(session)
        self.users = UserRepository(session)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    async def can_access(self, principal: Principal, tracker_id: str) -> bool:
        """Admin, owner or member."""
        if principal.is_admin:
            return True
        if await self.repo.is_owner(tracker_id, principal.user_id):
            return True
        return await self.repo.get_member(tracker_id, principal.user_id) is not None

    async def require_access(self, principal: Principal, tracker_id: str) -> None:
        if not await self.can_access(principal, tracker_id):
            logger.info(
                "Tracker access denied",
                tracker_id=tracker_id,
                user_id=str(principal.user_id),
            )
            raise ForbiddenError("Access denied")

    async def _get_for_owner(self, principal: Principal, tracker_id: str) -> Tracker:
        tracker = await self.repo.get_by_tracker_id(tracker_id)
        if tracker is None:
            raise NotFoundError("Tracker not found")
        if not principal.is_admin and tracker.owner_user_id != principal.user_id:
            raise ForbiddenError("Only the owner can modify this tracker")
        return tracker

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, principal: Principal, tracker_id: str) -> Tracker:
        """Access is checked before existence."""
        await self.require_access(principal, tracker_id)
        tracker = await self.repo.get_by_tracker_id(tracker_id)
        if tracker is None:
            raise NotFoundError("Tracker not found")
        return tracker

    async def list_for(self, principal: Principal) -> list[Tracker]:
        if principal.is_admin:
            return await self.repo.list_all()
        return await self.repo.list_visible_to(principal.user_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _origin_for(self, site_url: str) -> str:
        origin = extract_origin(site_url)
        if origin is None:
            raise ValidationError("Invalid site URL")
        return origin

    async def _check_global(self, origins: list[str]) -> None:
        policy = await self.policies.get()
        for origin in origins:
            if not is_origin_allowed(
                origin,
                policy.allowed_origins or [],
                strict=settings.strict_origin_matching,
            ):
                raise ForbiddenError(f"Origin not allowed: {origin}")

    async def create(self, principal: Principal, name: str, site_url: str) -> Tracker:
        """
        Create a tracker owned by the caller.

        The quota is a soft limit: two concurrent creates can both pass the
        count check.
        """
        policy = await self.policies.get()
        owned = await self.repo.count_owned_by(principal.user_id)
        if owned >= policy.max_trackers_per_user:
            raise ForbiddenError(
                f"Tracker quota exceeded. Max: {policy.max_trackers_per_user}"
            )

        origin = self._origin_for(site_url)
        await self._check_global([origin])

        tracker = await self.repo.create({
            "tracker_id": generate_tracker_id(),
            "owner_user_id": principal.user_id,
            "name": name,
            "site_url": site_url,
            "origins": [origin],
            "active": True,
        })
        logger.info(
            "Tracker created",
            tracker_id=tracker.tracker_id,
            owner=str(principal.user_id),
            origin=origin,
        )
        return tracker

    async def update(
        self,
        principal: Principal,
        tracker_id: str,
        *,
        name: Optional[str] = None,
        site_url: Optional[str] = None,
        origins: Optional[list[str]] = None,
        active: Optional[bool] = None,
        page_rules: Optional[dict[str, Any]] = None,
    ) -> Tracker:
        """
        Partial update. A new site URL replaces the origin list with its
        origin; an explicit ``origins`` list is applied after that.
        """
        tracker = await self._get_for_owner(principal, tracker_id)
        changes: dict[str, Any] = {}

        if name is not None:
            changes["name"] = name
        if site_url is not None:
            origin = self._origin_for(site_url)
            await self._check_global([origin])
            changes["site_url"] = site_url
            changes["origins"] = [origin]
        if origins is not None:
            normalized: list[str] = []
            for value in origins:
                origin = extract_origin(value)
                if origin is None:
                    raise ValidationError(f"Invalid origin: {value}")
                if origin not in normalized:
                    normalized.append(origin)
            await self._check_global(normalized)
            changes["origins"] = normalized
        if active is not None:
            changes["active"] = active
        if page_rules is not None:
            changes["page_rules"] = page_rules

        if not changes:
            return tracker

        tracker = await self.repo.update(tracker, changes)
        logger.info("Tracker updated", tracker_id=tracker_id, fields=sorted(changes))
        return tracker

    async def revoke(self, principal: Principal, tracker_id: str) -> Tracker:
        tracker = await self._get_for_owner(principal, tracker_id)
        tracker = await self.repo.revoke(tracker)
        logger.info("Tracker revoked", tracker_id=tracker_id, revoked_at=str(tracker.revoked_at))
        return tracker

    async def delete(self, principal: Principal, tracker_id: str) -> None:
        tracker = await self._get_for_owner(principal, tracker_id)
        await self.repo.delete_cascade(tracker)
        logger.info("Tracker deleted", tracker_id=tracker_id, by=str(principal.user_id))

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    async def list_members(self, principal: Principal, tracker_id: str) -> list[TrackerMember]:
        await self._get_for_owner(principal, tracker_id)
        return await self.repo.list_members(tracker_id)

    async def add_member(self, principal: Principal, tracker_id: str, email: str) -> TrackerMember:
        tracker = await self._get_for_owner(principal, tracker_id)

        user = await self.users.get_by_email(email)
        if user is None:
            raise NotFoundError("User not found")
        if user.id == tracker.owner_user_id:
            raise ConflictError("User already owns this tracker")
        if await self.repo.get_member(tracker_id, user.id) is not None:
            raise ConflictError("User is already a member of this tracker")

        member = await self.repo.add_member(tracker_id, user.id, MemberRole.VIEWER.value)
        logger.info("Tracker member added", tracker_id=tracker_id, user_id=str(user.id))
        return member

    async def remove_member(self, principal: Principal, tracker_id: str, user_id: UUID) -> None:
        await self._get_for_owner(principal, tracker_id)

        member = await self.repo.get_member(tracker_id, user_id)
        if member is None:
            raise NotFoundError("Member not found")

        await self.repo.remove_member(member)
        logger.info("Tracker member removed", tracker_id=tracker_id, user_id=str(user_id))
