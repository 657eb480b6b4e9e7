"""
Centralized Error Response Builder for Bella Planner.

Provides consistent error codes and messages for use across the API,
webhook, and service layers. The builder returns structured error dicts
compatible with the API response envelope.
"""

from __future__ import annotations

from typing import Any

from bella.lib.exceptions import (
    BellaException,
    ConfigurationError,
    NotFoundError,
    SessionClosedError,
    UpstreamError,
    ValidationError,
)

# =============================================================================
# Error Code Constants
# =============================================================================

UNAUTHORIZED = "UNAUTHORIZED"
NOT_FOUND = "NOT_FOUND"
VALIDATION_ERROR = "VALIDATION_ERROR"
CONFLICT = "CONFLICT"
UPSTREAM_ERROR = "UPSTREAM_ERROR"
INTERNAL_ERROR = "INTERNAL_ERROR"

_ERROR_MESSAGES: dict[str, str] = {
    UNAUTHORIZED: "Request signature could not be verified.",
    NOT_FOUND: "The requested resource was not found.",
    VALIDATION_ERROR: "Invalid input. Please check your request.",
    CONFLICT: "This conversation has already finished.",
    UPSTREAM_ERROR: "I'm having trouble processing right now. Let's try again in a few minutes.",
    INTERNAL_ERROR: "An internal error occurred. Please try again.",
}

# (error code, HTTP status) per exception class; most specific class first
_EXCEPTION_MAP: list[tuple[type[BellaException], str, int]] = [
    (ValidationError, VALIDATION_ERROR, 400),
    (NotFoundError, NOT_FOUND, 404),
    (SessionClosedError, CONFLICT, 409),
    (UpstreamError, UPSTREAM_ERROR, 502),
    (ConfigurationError, INTERNAL_ERROR, 500),
]


def get_error_message(code: str) -> str:
    """
    Get the default message for a given error code.

    Falls back to a generic message if the error code is unknown.
    """
    return _ERROR_MESSAGES.get(code, "An error occurred.")


def build_error_response(
    code: str,
    message: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build a structured error response dict.

    Args:
        code: Error code constant (e.g. NOT_FOUND)
        message: Optional override message
        details: Optional additional error details

    Returns:
        Structured error dict: {"code": str, "message": str, "details": dict | None}
    """
    resolved_message = message if message is not None else get_error_message(code)
    error: dict[str, Any] = {
        "code": code,
        "message": resolved_message,
    }
    if details is not None:
        error["details"] = details
    return error


def classify_exception(exc: BellaException) -> tuple[str, int]:
    """Return the (error code, HTTP status) pair for a Bella exception."""
    for exc_type, code, status in _EXCEPTION_MAP:
        if isinstance(exc, exc_type):
            return code, status
    return INTERNAL_ERROR, 500


__all__ = [
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
