"""
Repository package for data access layer.
"""
from quiziq.repositories.base import BaseRepository
from quiziq.repositories.event import EventRepository
from quiziq.repositories.lead import LeadRepository
from quiziq.repositories.policy import PolicyRepository
from quiziq.repositories.tracker import TrackerRepository
from quiziq.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "EventRepository",
    "LeadRepository",
    "PolicyRepository",
    "TrackerRepository",
    "UserRepository",
]
