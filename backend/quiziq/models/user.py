"""
User model - dashboard accounts. Credentials live with the identity service.
"""
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quiziq.core.database import Base

if TYPE_CHECKING:
    from quiziq.models.tracker import Tracker


class User(Base):
    """A person who owns or is granted access to trackers."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(320),
        unique=True,
        index=True,
        nullable=False,
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="friend",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    owned_trackers: Mapped[list["Tracker"]] = relationship(
        "Tracker",
        back_populates="owner",
    )

    def __repr__(self) -> str:
        return f"<User {self.email}>"
