"""
SQLAlchemy Base for Bella Planner.

This module provides the declarative base for all SQLAlchemy models.

Usage:
    from bella.models.base import Base

    class MyModel(Base):
        __tablename__ = "my_table"
        ...
"""

import secrets
import time
from datetime import UTC, datetime

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base shared by every model."""


def utcnow() -> datetime:
    """Timezone-aware current time, used for column defaults."""
    return datetime.now(UTC)


def generate_id(prefix: str) -> str:
    """Opaque id of the form `<prefix>_<epoch ms>_<random>`."""
    return f"{prefix}_{int(time.time() * 1000)}_{secrets.token_hex(6)}"


__all__ = ["Base", "utcnow", "generate_id"]
