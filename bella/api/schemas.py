"""
Pydantic Schemas for the Bella Planner REST API.

Request bodies are validated here; responses use the
`{success, data, error}` envelope built by `success_response` and
`error_response`.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from bella.lib.errors import build_error_response

# =============================================================================
# Envelope
# =============================================================================


def success_response(data: Any) -> dict[str, Any]:
    """Wrap a payload in the success envelope."""
    return {"success": True, "data": data, "error": None}


def error_response(
    code: str,
    message: str | None = None,
    details: dict[str, Any] | None = None,
    data: Any = None,
) -> dict[str, Any]:
    """Wrap an error code (and optional partial data) in the error envelope."""
    return {
        "success": False,
        "data": data,
        "error": build_error_response(code, message, details),
    }


# =============================================================================
# Planning
# =============================================================================


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ChatRequest(_CamelModel):
    """A user message for a planning session."""

    session_id: str = Field(..., alias="sessionId", min_length=1, max_length=80)
    user_message: str = Field(..., alias="userMessage", min_length=1, max_length=8000)


class CreateSessionRequest(_CamelModel):
    session_id: str | None = Field(default=None, alias="sessionId", max_length=80)


class PlanHistoryRequest(BaseModel):
    limit: int = Field(default=10, ge=1, le=100)


# =============================================================================
# Daily assistant
# =============================================================================


class DailyAssistantRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=4000)
    history: list[dict[str, str]] = Field(default_factory=list)


__all__ = [
    "success_response",
    "error_response",
    "ChatRequest",
    "CreateSessionRequest",
    "PlanHistoryRequest",
    "DailyAssistantRequest",
]
