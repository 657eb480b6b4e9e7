"""
Custom exception hierarchy for Bella Planner.

All exceptions inherit from BellaException, enabling a catch-all for
planner-specific errors while keeping the ability to catch specific
error types. The API layer maps each class to an HTTP status code.
"""

from __future__ import annotations


class BellaException(Exception):
    """Base exception for all Bella Planner errors."""


class ConfigurationError(BellaException):
    """Missing environment variables, invalid config values, or startup failures."""


class ValidationError(BellaException):
    """Missing or malformed request fields, rejected before any processing."""


class NotFoundError(BellaException):
    """A session, plan or profile that was asked for does not exist."""


class UpstreamError(BellaException):
    """LLM or chat-platform call failed after retries."""

    def __init__(self, message: str, user_message: str | None = None) -> None:
        super().__init__(message)
        self.user_message = user_message


class ParseError(BellaException):
    """Function-call arguments from the model could not be decoded."""


class StateError(BellaException):
    """Invalid state transitions, missing required state."""


class SessionClosedError(StateError):
    """A message arrived for a session that is already completed or errored."""


class InvariantViolation(StateError):
    """The planning phase failed to produce a savable plan."""


class DatabaseError(BellaException):
    """Database connection, query, or migration failures."""


__all__ = [
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
]
