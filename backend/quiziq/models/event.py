"""
Event model - the append-only behavioral log written by the collector.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from quiziq.core.database import Base
from quiziq.models.types import BigIntPK, JSONType


class EventKind(str, Enum):
    """
    Kinds the snippet emits today.

    Storage keeps ``ev`` as an open string; this set is only used to pick
    what aggregation counts, so unknown kinds are stored and ignored.
    """

    PAGE_VIEW = "page_view"
    QUIZ_START = "quiz_start"
    QUESTION_VIEW = "question_view"
    ANSWER_SELECT = "answer_select"
    QUESTION_SUBMIT = "question_submit"
    QUIZ_COMPLETE = "quiz_complete"
    LEAD_CAPTURE = "lead_capture"
    CTA_CLICK = "cta_click"


class Event(Base):
    """One immutable fact. Ordered by ``ts`` (client epoch-ms), not by ``id``."""

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    ts: Mapped[int] = mapped_column(BigInteger, nullable=False)
    ev: Mapped[str] = mapped_column(Text, nullable=False)
    sid: Mapped[str] = mapped_column(Text, nullable=False)
    tracker_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("trackers.tracker_id", ondelete="CASCADE"),
        nullable=False,
    )

    # Page context
    page_url: Mapped[str] = mapped_column(Text, nullable=False)
    path: Mapped[str] = mapped_column(Text, nullable=False)
    ref: Mapped[Optional[str]] = mapped_column(Text)

    # Traffic source
    utm_source: Mapped[Optional[str]] = mapped_column(Text)
    utm_medium: Mapped[Optional[str]] = mapped_column(Text)
    utm_campaign: Mapped[Optional[str]] = mapped_column(Text)
    utm_term: Mapped[Optional[str]] = mapped_column(Text)
    utm_content: Mapped[Optional[str]] = mapped_column(Text)

    # Viewport
    sw: Mapped[Optional[int]] = mapped_column(Integer)
    sh: Mapped[Optional[int]] = mapped_column(Integer)

    # Quiz funnel
    quiz_id: Mapped[Optional[str]] = mapped_column(Text)
    question_id: Mapped[Optional[str]] = mapped_column(Text)
    answer_id: Mapped[Optional[str]] = mapped_column(Text)

    extra: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONType)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_events_tracker_ts", "tracker_id", "ts"),
        Index("idx_events_tracker_ev_ts", "tracker_id", "ev", "ts"),
    )

    def __repr__(self) -> str:
        return f"<Event {self.ev} {self.tracker_id}@{self.ts}>"
