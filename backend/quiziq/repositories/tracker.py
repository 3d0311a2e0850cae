"""
Tracker repository for data access operations.
"""
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, func, select

from quiziq.models.event import Event
from quiziq.models.lead import Lead
from quiziq.models.tracker import MemberRole, Tracker, TrackerMember
from quiziq.repositories.base import BaseRepository


class TrackerRepository(BaseRepository[Tracker]):
    """Repository for Tracker and TrackerMember operations."""

    model = Tracker

    async def get_by_tracker_id(self, tracker_id: str) -> Optional[Tracker]:
        """Look up a tracker by its external id."""
        stmt = select(Tracker).where(Tracker.tracker_id == tracker_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_owned_by(self, user_id: UUID) -> int:
        stmt = select(func.count()).select_from(Tracker).where(Tracker.owner_user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def list_all(self) -> list[Tracker]:
        stmt = select(Tracker).order_by(Tracker.created_at.desc(), Tracker.tracker_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_visible_to(self, user_id: UUID) -> list[Tracker]:
        """Owned trackers plus trackers the user was granted membership on."""
        member_ids = select(TrackerMember.tracker_id).where(TrackerMember.user_id == user_id)
        stmt = (
            select(Tracker)
            .where(
                (Tracker.owner_user_id == user_id)
                | (Tracker.tracker_id.in_(member_ids))
            )
            .order_by(Tracker.created_at.desc(), Tracker.tracker_id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def is_owner(self, tracker_id: str, user_id: UUID) -> bool:
        stmt = select(Tracker.id).where(
            Tracker.tracker_id == tracker_id,
            Tracker.owner_user_id == user_id,
        )
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def get_member(self, tracker_id: str, user_id: UUID) -> Optional[TrackerMember]:
        return await self.session.get(TrackerMember, (tracker_id, user_id))

    async def add_member(
        self,
        tracker_id: str,
        user_id: UUID,
        role: str = MemberRole.VIEWER.value,
    ) -> TrackerMember:
        member = TrackerMember(tracker_id=tracker_id, user_id=user_id, role=role)
        self.session.add(member)
        await self.session.flush()
        return member

    async def remove_member(self, member: TrackerMember) -> None:
        await self.session.delete(member)
        await self.session.flush()

    async def list_members(self, tracker_id: str) -> list[TrackerMember]:
        stmt = select(TrackerMember).where(TrackerMember.tracker_id == tracker_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def revoke(self, tracker: Tracker) -> Tracker:
        """Revocation is terminal; the first timestamp wins."""
        if tracker.revoked_at is None:
            tracker.revoked_at = datetime.now(timezone.utc)
            await self.session.flush()
            await self.session.refresh(tracker)
        return tracker

    async def delete_cascade(self, tracker: Tracker) -> None:
        """
        Hard delete a tracker with its events, leads and memberships.

        Children are removed with bulk deletes so the cascade holds even
        where the database does not enforce foreign keys.
        """
        tracker_id = tracker.tracker_id
        await self.session.execute(delete(Lead).where(Lead.tracker_id == tracker_id))
        await self.session.execute(delete(Event).where(Event.tracker_id == tracker_id))
        await self.session.execute(
            delete(TrackerMember).where(TrackerMember.tracker_id == tracker_id)
        )
        await self.delete(tracker)
