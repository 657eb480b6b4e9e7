"""
Webhook event deduplication for Bella Planner.

Chat platforms redeliver events on timeouts, so each inbound message is
claimed once by key (`{channel}-{ts}`) before any processing happens.

Keys are claimed in Redis with `SET NX EX`, which makes the check shared
across server instances and durable across restarts. When Redis is
unreachable a bounded in-process map with the same TTL is used instead;
that fallback is per-process only.
"""

import asyncio
import time
from collections import OrderedDict

from bella.services.redis_service import RedisService, get_redis_service


class EventDeduplicator:
    """
    Claim-once registry of recently seen event keys.

    - TTL-based expiration (default 5 minutes)
    - Redis backend with bounded in-memory fallback
    - Oldest-first eviction when the fallback map is full
    """

    DEFAULT_TTL = 300
    MAX_SIZE = 10000
    KEY_PREFIX = "event_dedup:"

    def __init__(
        self,
        ttl: int = DEFAULT_TTL,
        max_size: int = MAX_SIZE,
        redis_service: RedisService | None = None,
    ):
        self._ttl = ttl
        self._max_size = max_size
        self._seen: OrderedDict[str, float] = OrderedDict()
        self._lock = asyncio.Lock()
        self._redis = redis_service or get_redis_service()

    @staticmethod
    def event_key(channel: str, ts: str) -> str:
        return f"{channel}-{ts}"

    async def claim(self, key: str) -> bool:
        """
        Claim an event key.

        Returns:
            True the first time a key is seen within the TTL, False for replays.
        """
        claimed = await self._redis.set_if_absent(f"{self.KEY_PREFIX}{key}", time.time(), ttl=self._ttl)
        if claimed is not None:
            return claimed
        return await self._claim_local(key)

    async def _claim_local(self, key: str) -> bool:
        async with self._lock:
            now = time.monotonic()
            self._cleanup_expired(now)
            if key in self._seen:
                return False
            while len(self._seen) >= self._max_size:
                self._seen.popitem(last=False)
            self._seen[key] = now
            return True

    def _cleanup_expired(self, now: float) -> None:
        # insertion order == age order, so stop at the first live entry
        while self._seen:
            oldest_key, seen_at = next(iter(self._seen.items()))
            if now - seen_at <= self._ttl:
                break
            del self._seen[oldest_key]

    async def size(self) -> int:
        """Number of keys held in the local fallback map."""
        async with self._lock:
            self._cleanup_expired(time.monotonic())
            return len(self._seen)


_deduplicator: EventDeduplicator | None = None


def get_event_deduplicator() -> EventDeduplicator:
    """Get the process-wide deduplicator."""
    global _deduplicator
    if _deduplicator is None:
        from bella.config.settings import get_settings

        _deduplicator = EventDeduplicator(ttl=get_settings().event_dedup_ttl_seconds)
    return _deduplicator
