"""
Middleware package.
"""
from quiziq.middleware.cors import PathScopedCORSMiddleware
from quiziq.middleware.error_handler import ErrorHandlerMiddleware
from quiziq.middleware.request_id import RequestIdMiddleware

__all__ = [
    "ErrorHandlerMiddleware",
    "PathScopedCORSMiddleware",
    "RequestIdMiddleware",
]
