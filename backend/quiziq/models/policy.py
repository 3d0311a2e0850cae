"""
Policy model - the global limits, stored as a single row.
"""
from sqlalchemy import Boolean, Integer
from sqlalchemy.orm import Mapped, mapped_column

from quiziq.core.database import Base
from quiziq.models.types import JSONType

POLICY_ROW_ID = True


class Policy(Base):
    """
    Singleton configuration row.

    The boolean primary key can only ever hold ``true``, so concurrent
    first inserts collide on the key instead of creating duplicates.
    """

    __tablename__ = "policies"

    id: Mapped[bool] = mapped_column(Boolean, primary_key=True, default=POLICY_ROW_ID)
    max_trackers_per_user: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    max_collect_rps_per_origin: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    retention_days: Mapped[int] = mapped_column(Integer, nullable=False, default=365)

    # Empty list means every origin is allowed
    allowed_origins: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    def __repr__(self) -> str:
        return f"<Policy max_trackers={self.max_trackers_per_user} rps={self.max_collect_rps_per_origin}>"
