"""
Core package containing configuration, database, security, logging and errors.
"""
from quiziq.core.config import settings
from quiziq.core.database import Base, DbSession, get_db_session
from quiziq.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    QuizIQError,
    RateLimitError,
    UnauthorizedError,
    ValidationError,
)
from quiziq.core.logging import configure_logging, get_logger
from quiziq.core.security import (
    CurrentPrincipal,
    Principal,
    create_access_token,
    decode_access_token,
    get_current_principal,
)

__all__ = [
    "settings",
    "Base",
    "DbSession",
    "get_db_session",
    "configure_logging",
    "get_logger",
    "QuizIQError",
    "ValidationError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "RateLimitError",
    "InternalError",
    "Principal",
    "CurrentPrincipal",
    "create_access_token",
    "decode_access_token",
    "get_current_principal",
]
