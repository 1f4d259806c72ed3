"""Per-user result cache for metric values.

The engine owns key derivation and the invalidation policy only; storage is
an injected key-value client (redis.asyncio.Redis in production) offering
get, set with a TTL in seconds, and delete.

Policy:
- Key = (user id, metric). Values are integers stored as strings.
- On miss the value is computed and stored with a fixed TTL (one day).
  Concurrent misses for the same key may both compute; the last write wins.
- A new edit by a user deletes that user's entry for EVERY metric kind,
  because composite metrics (score2) depend on all the others.
- Ranged lookups never reach the cache (see evaluator.get_metric_value).
"""

from typing import Awaitable, Callable, Optional, Protocol

import structlog

from contribscores.config import settings
from contribscores.metrics import cache_invalidations
from contribscores.models.metric import MetricKind

log = structlog.get_logger(__name__)

KEY_PREFIX = "contribscores"


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[str | bytes]: ...

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> object: ...

    async def delete(self, *keys: str) -> int: ...


class ResultCache:
    """TTL cache of metric values keyed by (user id, metric)."""

    def __init__(self, store: KeyValueStore, ttl: Optional[int] = None) -> None:
        self._store = store
        self.ttl = ttl if ttl is not None else settings.contrib_score_cache_ttl_seconds

    @staticmethod
    def key(user_id: int, metric: MetricKind) -> str:
        return f"{KEY_PREFIX}:{user_id}:{MetricKind(metric).value}"

    async def get(self, user_id: int, metric: MetricKind) -> Optional[int]:
        raw = await self._store.get(self.key(user_id, metric))
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode()
        return int(raw)

    async def get_or_compute(
        self,
        user_id: int,
        metric: MetricKind,
        compute: Callable[[], Awaitable[int]],
    ) -> tuple[int, bool]:
        """Return (value, hit). On a miss, await compute() and store the result."""
        cached = await self.get(user_id, metric)
        if cached is not None:
            return cached, True

        value = await compute()
        await self._store.set(self.key(user_id, metric), str(int(value)), ex=self.ttl)
        return value, False

    async def invalidate(self, user_id: int) -> int:
        """Delete the user's cached value for every metric kind.

        Returns:
            Number of keys actually removed from the store.
        """
        keys = [self.key(user_id, metric) for metric in MetricKind]
        return await self._store.delete(*keys)


async def on_edit_committed(cache: ResultCache, user_id: int, source: str = "hook") -> int:
    """Edit-ingestion hook: drop every cached metric for the editing user."""
    removed = await cache.invalidate(user_id)
    cache_invalidations.labels(source=source).inc()
    log.info("metric_cache_invalidated", user_id=user_id, removed=removed, source=source)
    return removed
