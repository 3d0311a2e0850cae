"""
SQLAlchemy models package.
All models are imported here so they register on Base.metadata.
"""
from quiziq.models.event import Event, EventKind
from quiziq.models.lead import Lead
from quiziq.models.policy import Policy
from quiziq.models.tracker import MemberRole, Tracker, TrackerMember
from quiziq.models.user import User

__all__ = [
    "User",
    "Tracker",
    "TrackerMember",
    "MemberRole",
    "Event",
    "EventKind",
    "Lead",
    "Policy",
]
