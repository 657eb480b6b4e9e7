"""
Lib package for Bella Planner.

Contains shared utilities:
- exceptions.py: Exception hierarchy rooted at BellaException
- errors.py: Error codes and the API error builder
- logging.py: structlog setup and per-session context
- prompts.py: Prompt templates for Bella and Dave
- database.py: Engine, session factory and the FastAPI db dependency
"""

from bella.lib.errors import (
    CONFLICT,
    INTERNAL_ERROR,
    NOT_FOUND,
    UNAUTHORIZED,
    UPSTREAM_ERROR,
    VALIDATION_ERROR,
    build_error_response,
    classify_exception,
    get_error_message,
)
from bella.lib.exceptions import (
    BellaException,
    ConfigurationError,
    DatabaseError,
    InvariantViolation,
    NotFoundError,
    ParseError,
    SessionClosedError,
    StateError,
    UpstreamError,
    ValidationError,
)

__all__ = [
    # Exceptions
    "BellaException",
    "ConfigurationError",
    "ValidationError",
    "NotFoundError",
    "UpstreamError",
    "ParseError",
    "StateError",
    "SessionClosedError",
    "InvariantViolation",
    "DatabaseError",
    # Errors
    "UNAUTHORIZED",
    "NOT_FOUND",
    "VALIDATION_ERROR",
    "CONFLICT",
    "UPSTREAM_ERROR",
    "INTERNAL_ERROR",
    "get_error_message",
    "build_error_response",
    "classify_exception",
]
