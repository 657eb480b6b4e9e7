"""
Shared test fixtures for Bella Planner.

This module provides common fixtures used across all test modules:
- Environment setup (dev mode, in-memory database)
- Database session (in-memory SQLite)
- A scripted fake LLM standing in for the Groq client
- Builders for function-call payloads

Usage:
    All fixtures are automatically available to any test in the tests/ directory.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from types import SimpleNamespace
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# ---------------------------------------------------------------------------
# 1. Environment setup -- must run before any application imports
# ---------------------------------------------------------------------------

os.environ.setdefault("BELLA_DEV_MODE", "1")
os.environ.setdefault("BELLA_ENVIRONMENT", "development")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6390/15")

# ---------------------------------------------------------------------------
# Application imports (after env vars are set)
# ---------------------------------------------------------------------------

from bella.config.settings import Settings  # noqa: E402
from bella.models import Base  # noqa: E402
from bella.modules.planning_state import (  # noqa: E402
    BellaResponse,
    SaveWeeklyPlan,
    SetContinuationFlag,
)
from bella.services.llm_client import ERROR_MESSAGE  # noqa: E402

# ---------------------------------------------------------------------------
# 2. db_session -- in-memory SQLite session for unit tests
# ---------------------------------------------------------------------------


@pytest.fixture()
def db_engine():
    """In-memory SQLite engine shared across connections (API tests use several)."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory):
    """
    Provide a SQLAlchemy session backed by an in-memory SQLite database.

    A fresh database is created for every test that requests this fixture.
    """
    session = session_factory()
    yield session
    session.close()


# ---------------------------------------------------------------------------
# 3. settings -- explicit settings object (no environment lookups)
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings():
    return Settings(database_url="sqlite:///:memory:", user_id="user-1")


# ---------------------------------------------------------------------------
# 4. Function-call payload builders
# ---------------------------------------------------------------------------


def make_days(tasks_per_day: int = 2) -> dict[str, Any]:
    dates = {
        "monday": "2026-10-26",
        "tuesday": "2026-10-27",
        "wednesday": "2026-10-28",
        "thursday": "2026-10-29",
        "friday": "2026-10-30",
    }
    return {
        day: {
            "date": date,
            "tasks": [
                {"time": f"{9 + i}:00 AM", "task": f"{day} task {i}", "duration": 60, "type": "work"}
                for i in range(tasks_per_day)
            ],
        }
        for day, date in dates.items()
    }


def make_plan(targets: Iterable[str] = ("Ship feature X", "Gym 3x")) -> SaveWeeklyPlan:
    return SaveWeeklyPlan.model_validate({"weeklyTargets": list(targets), "days": make_days()})


def continue_flag(value: bool) -> SetContinuationFlag:
    return SetContinuationFlag.model_validate({"continueConversation": value, "reason": "test"})


class FakeLLM:
    """
    Scripted stand-in for `LLMClient`.

    `responses` feeds `generate_response`; `chat_messages` feeds `chat`
    (used by the daily assistant). Every call is recorded.
    """

    def __init__(self, responses: list[BellaResponse] | None = None, chat_messages: list[Any] | None = None):
        self.responses = list(responses or [])
        self.chat_messages = list(chat_messages or [])
        self.calls: list[tuple[str, str]] = []
        self.chat_calls: list[list[dict[str, Any]]] = []

    async def generate_response(self, chat_history: str, user_profile: str) -> BellaResponse:
        self.calls.append((chat_history, user_profile))
        if not self.responses:
            return BellaResponse(message=ERROR_MESSAGE, error="no scripted response")
        return self.responses.pop(0)

    async def chat(self, messages, tools=None, temperature=None):
        self.chat_calls.append(list(messages))
        reply = self.chat_messages.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def close(self) -> None:
        return None


def tool_call(name: str, arguments: str, call_id: str = "call_1") -> SimpleNamespace:
    return SimpleNamespace(
        id=call_id,
        type="function",
        function=SimpleNamespace(name=name, arguments=arguments),
    )


def chat_message(content: str | None = None, tool_calls: list | None = None) -> SimpleNamespace:
    return SimpleNamespace(content=content, tool_calls=tool_calls)


@pytest.fixture()
def fake_llm():
    return FakeLLM()


@pytest.fixture()
def build_plan():
    return make_plan


@pytest.fixture()
def build_flag():
    return continue_flag


@pytest.fixture()
def llm_factory():
    return FakeLLM


@pytest.fixture()
def openai_message():
    """Builders for OpenAI-shaped chat messages: (chat_message, tool_call)."""
    return SimpleNamespace(message=chat_message, tool_call=tool_call)
