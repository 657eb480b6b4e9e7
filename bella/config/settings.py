"""
Runtime configuration for Bella Planner.

All settings come from environment variables and are read once into a
frozen dataclass. Call `get_settings.cache_clear()` in tests after changing
the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

from bella.lib.exceptions import ConfigurationError

# Single-user deployment: every session belongs to this user unless overridden.
DEFAULT_USER_ID = "68cca41fb015304ecc79c64a"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class SlackAppConfig:
    """Credentials for one Slack app (Bella or Dave)."""

    bot_token: str | None = None
    signing_secret: str | None = None
    bot_user_id: str | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.bot_token)


@dataclass(frozen=True)
class Settings:
    """Application settings."""

    environment: str = "development"
    dev_mode: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: tuple[str, ...] = field(default_factory=tuple)

    database_url: str = "sqlite:///./bella.db"
    redis_url: str = "redis://localhost:6379/0"

    groq_api_key: str | None = None
    groq_base_url: str = "https://api.groq.com/openai/v1"
    groq_model: str = "llama-3.3-70b-versatile"
    groq_timeout_seconds: float = 60.0

    user_id: str = DEFAULT_USER_ID
    max_iterations: int = 20
    max_planning_attempts: int = 3
    event_dedup_ttl_seconds: int = 300

    slack_user_id: str | None = None
    bella_slack: SlackAppConfig = field(default_factory=SlackAppConfig)
    dave_slack: SlackAppConfig = field(default_factory=SlackAppConfig)
    app_url: str = "http://localhost:3000"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from the process environment."""
        cors_env = os.getenv("BELLA_CORS_ORIGINS", "")
        cors_origins = tuple(o.strip() for o in cors_env.split(",") if o.strip())
        environment = os.getenv("BELLA_ENVIRONMENT", "development")

        if environment == "production" and "*" in cors_origins:
            raise ConfigurationError(
                "BELLA_CORS_ORIGINS contains wildcard '*' which is forbidden in production."
            )

        return cls(
            environment=environment,
            dev_mode=os.getenv("BELLA_DEV_MODE", "0") == "1",
            host=os.getenv("BELLA_HOST", "0.0.0.0"),
            port=_env_int("BELLA_PORT", 8000),
            cors_origins=cors_origins,
            database_url=os.getenv("DATABASE_URL", "sqlite:///./bella.db"),
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            groq_api_key=os.getenv("GROQ_API_KEY"),
            groq_base_url=os.getenv("GROQ_BASE_URL", "https://api.groq.com/openai/v1"),
            groq_model=os.getenv("GROQ_DEFAULT_MODEL", "llama-3.3-70b-versatile"),
            groq_timeout_seconds=_env_float("GROQ_TIMEOUT_SECONDS", 60.0),
            user_id=os.getenv("BELLA_USER_ID", DEFAULT_USER_ID),
            max_iterations=_env_int("BELLA_MAX_ITERATIONS", 20),
            max_planning_attempts=_env_int("BELLA_MAX_PLANNING_ATTEMPTS", 3),
            event_dedup_ttl_seconds=_env_int("EVENT_DEDUP_TTL_SECONDS", 300),
            slack_user_id=os.getenv("SLACK_USER_ID"),
            bella_slack=SlackAppConfig(
                bot_token=os.getenv("SLACK_BOT_TOKEN"),
                signing_secret=os.getenv("SLACK_SIGNING_SECRET"),
                bot_user_id=os.getenv("SLACK_BOT_USER_ID"),
            ),
            dave_slack=SlackAppConfig(
                bot_token=os.getenv("DAVE_SLACK_BOT_TOKEN"),
                signing_secret=os.getenv("DAVE_SLACK_SIGNING_SECRET"),
                bot_user_id=os.getenv("DAVE_SLACK_USER_ID"),
            ),
            app_url=os.getenv("BELLA_APP_URL", "http://localhost:3000"),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the process-wide settings (cached)."""
    return Settings.from_env()
