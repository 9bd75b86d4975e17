"""Cache-aside orchestration for read endpoints.

``CacheAside.get_or_set`` is the single entry point every public read path
goes through:

1. Look the key up; a hit is returned as-is.
2. On a miss, run the fetcher against the relational store.
3. Populate the cache in a detached task and return the fresh value.

There is no per-key lock. Two concurrent misses for the same key both run the
fetcher and both write the same derived value; last write wins. Write rates
are low and TTLs short, so the duplicated work is accepted.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from proxyforms.cache.keys import CacheKeys
from proxyforms.cache.redis import CacheStore, CacheTTL
from proxyforms.observability.metrics import get_metrics
from proxyforms.tasks import TaskSpawner

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _resource(key: str) -> str:
    """Metric label for a key; keys outside the schema share one label."""
    parsed = CacheKeys.parse_key(key)
    return parsed["resource"] if parsed else "other"


class CacheAside:
    """Get-or-compute-and-store wrapper around a ``CacheStore``."""

    def __init__(self, store: CacheStore, spawner: TaskSpawner):
        self.store = store
        self.spawner = spawner

    async def get_or_set(
        self,
        key: str,
        ttl: int,
        fetcher: Callable[[], Awaitable[T]],
    ) -> T:
        """Return the cached value for ``key`` or compute, cache and return it.

        Args:
            key: Logical cache key (see ``CacheKeys``)
            ttl: Expiration in seconds (see ``CacheTTL``)
            fetcher: Coroutine factory producing a JSON-compatible value

        Exceptions raised by ``fetcher`` propagate and nothing is cached.
        """
        metrics = get_metrics()
        resource = _resource(key)

        cached = await self.store.get(key)
        if cached is not None:
            metrics.cache_hits_total.labels(resource=resource).inc()
            return cached  # type: ignore[no-any-return]

        metrics.cache_misses_total.labels(resource=resource).inc()
        value = await fetcher()
        self.spawner.spawn(self._populate(key, value, ttl), name=f"cache-populate:{resource}")
        return value

    async def _populate(self, key: str, value: Any, ttl: int) -> None:
        if not await self.store.set(key, value, ttl):
            logger.warning(f"Failed to cache {key}")


__all__ = ["CacheAside", "CacheTTL"]
