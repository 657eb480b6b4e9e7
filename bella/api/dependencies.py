"""
FastAPI dependencies for Bella Planner.

Tests override these through `app.dependency_overrides`.
"""

from fastapi import Depends
from sqlalchemy.orm import Session as DbSession
from sqlalchemy.orm import sessionmaker

from bella.bot.webhook import BellaSlackHandler, DaveSlackHandler
from bella.config.settings import Settings, get_settings
from bella.lib.database import get_db, get_session_factory
from bella.services.event_dedup import EventDeduplicator, get_event_deduplicator
from bella.services.llm_client import LLMClient, get_llm_client


def get_app_settings() -> Settings:
    return get_settings()


def get_llm() -> LLMClient:
    return get_llm_client()


def get_deduplicator() -> EventDeduplicator:
    return get_event_deduplicator()


def get_db_session_factory() -> sessionmaker[DbSession]:
    return get_session_factory()


def get_bella_handler(
    settings: Settings = Depends(get_app_settings),
    llm: LLMClient = Depends(get_llm),
    dedup: EventDeduplicator = Depends(get_deduplicator),
    session_factory: sessionmaker[DbSession] = Depends(get_db_session_factory),
) -> BellaSlackHandler:
    return BellaSlackHandler(settings.bella_slack, settings, session_factory, llm, dedup)


def get_dave_handler(
    settings: Settings = Depends(get_app_settings),
    llm: LLMClient = Depends(get_llm),
    dedup: EventDeduplicator = Depends(get_deduplicator),
    session_factory: sessionmaker[DbSession] = Depends(get_db_session_factory),
) -> DaveSlackHandler:
    return DaveSlackHandler(settings.dave_slack, settings, session_factory, llm, dedup)


__all__ = [
    "get_db",
    "get_app_settings",
    "get_llm",
    "get_deduplicator",
    "get_db_session_factory",
    "get_bella_handler",
    "get_dave_handler",
]
