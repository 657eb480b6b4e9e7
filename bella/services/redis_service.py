"""Redis service for shared, TTL-bounded state (webhook dedup keys)."""

import dataclasses
import json
import logging
import os
import time
from datetime import date, datetime
from enum import Enum
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

# Seconds to wait before trying to reconnect after a failed connection attempt
_RECONNECT_INTERVAL = 30.0


class BellaJSONEncoder(json.JSONEncoder):
    """
    JSON encoder that handles:
    - dataclasses via dataclasses.asdict()
    - datetime/date via .isoformat()
    - Enum via .value
    - set via list()
    """

    def default(self, obj: Any) -> Any:
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return dataclasses.asdict(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, set):
            return list(obj)
        return super().default(obj)


class RedisService:
    """Thin async Redis wrapper that degrades to "unavailable" instead of raising."""

    def __init__(self, redis_url: str | None = None) -> None:
        self._redis_url = redis_url or os.environ.get("REDIS_URL", "redis://localhost:6379/0")
        self._client: redis.Redis | None = None
        self._last_failure: float | None = None

    async def _ensure_async_client(self) -> redis.Redis | None:
        """Get or create the async client; None while Redis is unreachable."""
        if self._client is not None:
            return self._client
        if self._last_failure is not None and time.monotonic() - self._last_failure < _RECONNECT_INTERVAL:
            return None
        try:
            client = redis.from_url(self._redis_url, decode_responses=True)
            await client.ping()
        except (RedisError, OSError):
            logger.warning("Redis unavailable at %s, using in-process fallback", self._redis_url)
            self._last_failure = time.monotonic()
            return None
        self._client = client
        self._last_failure = None
        return self._client

    @property
    def client(self) -> redis.Redis | None:
        """The raw async client, if connected."""
        return self._client

    async def get(self, key: str) -> str | None:
        client = await self._ensure_async_client()
        if client is None:
            return None
        result = await client.get(key)
        return str(result) if result is not None else None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """Set key-value with optional TTL (seconds)."""
        client = await self._ensure_async_client()
        if client is None:
            return False
        payload = json.dumps(value, cls=BellaJSONEncoder)
        if ttl:
            return bool(await client.setex(key, ttl, payload))
        return bool(await client.set(key, payload))

    async def set_if_absent(self, key: str, value: Any, ttl: int) -> bool | None:
        """
        Atomically claim a key (SET NX EX).

        Returns:
            True if the key was claimed, False if it already existed,
            None if Redis is unavailable.
        """
        client = await self._ensure_async_client()
        if client is None:
            return None
        try:
            result = await client.set(key, json.dumps(value, cls=BellaJSONEncoder), nx=True, ex=ttl)
        except RedisError:
            logger.exception("Redis SET NX failed for key %s", key)
            self._client = None
            self._last_failure = time.monotonic()
            return None
        return bool(result)

    async def delete(self, key: str) -> bool:
        client = await self._ensure_async_client()
        if client is None:
            return False
        return bool(await client.delete(key))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


_redis_service: RedisService | None = None


def get_redis_service() -> RedisService:
    """Get Redis service singleton."""
    global _redis_service
    if _redis_service is None:
        _redis_service = RedisService()
    return _redis_service
