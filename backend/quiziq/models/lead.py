"""
Lead model - contact details captured by a ``lead_capture`` event.
"""
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from quiziq.core.database import Base
from quiziq.models.types import BigIntPK, JSONType


class Lead(Base):
    """Shares ts, tracker_id and sid with the event that produced it."""

    __tablename__ = "leads"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    ts: Mapped[int] = mapped_column(BigInteger, nullable=False)
    tracker_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("trackers.tracker_id", ondelete="CASCADE"),
        nullable=False,
    )
    sid: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(Text)
    name: Mapped[Optional[str]] = mapped_column(Text)
    phone: Mapped[Optional[str]] = mapped_column(Text)
    extra: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_leads_tracker_ts", "tracker_id", "ts"),
    )

    def __repr__(self) -> str:
        return f"<Lead {self.email or self.sid}>"
