"""
Database engine and session factory for Bella Planner.

Usage:
    from bella.lib.database import get_session_factory, init_db

    init_db()                       # create tables (idempotent)
    with get_session_factory()() as db:
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session as DbSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bella.config.settings import get_settings
from bella.models.base import Base

logger = logging.getLogger(__name__)

_engine: Engine | None = None
_session_factory: sessionmaker[DbSession] | None = None


def build_engine(database_url: str) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""
    if database_url.startswith("sqlite"):
        kwargs: dict[str, object] = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url:
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


def get_engine() -> Engine:
    """Get the process-wide engine (created on first use)."""
    global _engine
    if _engine is None:
        _engine = build_engine(get_settings().database_url)
    return _engine


def get_session_factory() -> sessionmaker[DbSession]:
    """Get the process-wide session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _session_factory


def init_db(engine: Engine | None = None) -> None:
    """Create all tables registered on Base.metadata."""
    # model modules must be imported so their tables are registered
    import bella.models  # noqa: F401

    target = engine or get_engine()
    Base.metadata.create_all(target)
    logger.info("Database tables ensured on %s", target.url.render_as_string(hide_password=True))


def get_db() -> Iterator[DbSession]:
    """FastAPI dependency yielding a session that is closed after the request."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def reset_engine() -> None:
    """Drop cached engine/session factory (tests and settings reloads)."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
