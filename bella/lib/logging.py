"""
Logging for Bella Planner.

stdlib loggers (`logging.getLogger(__name__)`, used throughout the package)
are rendered through structlog: JSON lines in production, coloured console
output when dev mode is on. Every record carries the session/user bound for
the current planning turn, and Slack/Groq credentials are masked before
rendering.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from bella.config.settings import Settings

QUIET_LOGGERS = ("httpx", "httpcore", "openai", "urllib3")

# Slack bot/user/app tokens and Groq API keys
_SECRET_PATTERN = re.compile(r"\b(xox[abpr]-|xapp-|gsk_)[A-Za-z0-9_-]+")


def redact_secrets(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Mask credentials in string values of the event dict."""
    for key, value in event_dict.items():
        if isinstance(value, str) and _SECRET_PATTERN.search(value):
            event_dict[key] = _SECRET_PATTERN.sub(lambda m: m.group(1) + "***", value)
    return event_dict


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging(settings: Settings | None = None) -> None:
    """
    Install a single structlog-rendered handler on the root logger.

    Safe to call more than once. Dev mode comes from `settings` when given,
    otherwise from BELLA_DEV_MODE; the level always comes from LOG_LEVEL.
    """
    dev_mode = settings.dev_mode if settings is not None else os.environ.get("BELLA_DEV_MODE") == "1"
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()

    pre_chain = _pre_chain()
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    render = structlog.dev.ConsoleRenderer() if dev_mode else structlog.processors.JSONRenderer()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                redact_secrets,
                render,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, level_name, logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_session_context(session_id: str, user_id: str | None = None) -> None:
    """
    Scope log context to one planning session.

    Replaces whatever the previous turn bound on this task.
    """
    structlog.contextvars.clear_contextvars()
    context = {"session_id": session_id}
    if user_id is not None:
        context["user_id"] = user_id
    structlog.contextvars.bind_contextvars(**context)


__all__ = ["setup_logging", "bind_session_context", "redact_secrets"]
