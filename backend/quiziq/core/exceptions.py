"""
Domain error taxonomy.

Services raise these; the application-level handler in ``quiziq.main``
turns them into JSON responses. Nothing here is retried automatically.
"""
from typing import Any, Optional


class QuizIQError(Exception):
    """Base class for every error surfaced to API callers."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message}


class ValidationError(QuizIQError):
    """Malformed or out-of-range input."""

    status_code = 400
    default_message = "Invalid input"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[list[dict[str, Any]]] = None,
    ) -> None:
        super().__init__(message)
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        if self.details:
            body["details"] = self.details
        return body


class UnauthorizedError(QuizIQError):
    status_code = 401
    default_message = "Unauthorized"


class ForbiddenError(QuizIQError):
    """Inactive tracker, disallowed origin, missing rights or quota exceeded."""

    status_code = 403
    default_message = "Forbidden"


class NotFoundError(QuizIQError):
    status_code = 404
    default_message = "Not found"


class ConflictError(QuizIQError):
    status_code = 409
    default_message = "Conflict"


class RateLimitError(QuizIQError):
    """Carries the epoch-ms instant at which the caller may retry."""

    status_code = 429
    default_message = "Rate limit exceeded"

    def __init__(self, reset_at: int, message: Optional[str] = None) -> None:
        super().__init__(message)
        self.reset_at = reset_at

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.message, "resetAt": self.reset_at}


class InternalError(QuizIQError):
    """Unexpected failure. Callers only ever see the generic message."""

    status_code = 500
