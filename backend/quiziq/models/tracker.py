"""
Tracker model - a per-site collection endpoint and who may read it.
"""
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quiziq.core.database import Base
from quiziq.models.types import JSONType

if TYPE_CHECKING:
    from quiziq.models.user import User


class MemberRole(str, Enum):
    """Roles a non-owner can hold on a tracker."""

    VIEWER = "viewer"


class Tracker(Base):
    """
    Named collection endpoint.

    ``tracker_id`` is the opaque id embedded in the snippet; ``id`` never
    leaves the database. ``active`` and ``revoked_at`` are independent:
    ingestion needs the first true and the second unset.
    """

    __tablename__ = "trackers"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )
    tracker_id: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        index=True,
        nullable=False,
    )
    owner_user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    site_url: Mapped[str] = mapped_column(Text, nullable=False)

    # Empty list accepts any origin the global policy accepts
    origins: Mapped[list[str]] = mapped_column(
        JSONType,
        default=list,
        nullable=False,
    )
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    page_rules: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    revoked_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
    )

    owner: Mapped["User"] = relationship("User", back_populates="owned_trackers")
    members: Mapped[list["TrackerMember"]] = relationship(
        "TrackerMember",
        back_populates="tracker",
        passive_deletes=True,
    )

    @property
    def accepts_events(self) -> bool:
        return self.active and self.revoked_at is None

    def __repr__(self) -> str:
        return f"<Tracker {self.tracker_id}>"


class TrackerMember(Base):
    """Explicit read access granted to a user who does not own the tracker."""

    __tablename__ = "tracker_members"

    tracker_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("trackers.tracker_id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    role: Mapped[str] = mapped_column(
        String(20),
        default=MemberRole.VIEWER.value,
        nullable=False,
    )

    tracker: Mapped["Tracker"] = relationship("Tracker", back_populates="members")
