"""Redis cache store for ProxyForms.

Provides best-effort async key-value operations over redis-py's asyncio
client. Every operation degrades to a neutral value (a cache miss, ``False``,
``0``) when Redis is unreachable or holds undecodable data: the relational
store is the source of truth, so a broken cache may only cost latency.

All keys are namespaced with a fixed prefix before reaching Redis and values
are stored as JSON (orjson).
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING, Any, cast

import orjson
from redis.asyncio import Redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from proxyforms.observability.metrics import get_metrics

if TYPE_CHECKING:
    from proxyforms.config import Settings

logger = logging.getLogger(__name__)

# Errors that mean "the store is unavailable", absorbed by every operation
STORE_ERRORS = (RedisError, OSError)

# Keys deleted per DEL round-trip during pattern deletion
_DELETE_BATCH = 500


class CacheTTL(IntEnum):
    """Expiration tiers in seconds, chosen by how often a resource changes."""

    ONE_MINUTE = 60
    FIVE_MINUTES = 300
    TEN_MINUTES = 600
    THIRTY_MINUTES = 1800
    ONE_HOUR = 3600
    SIX_HOURS = 21600
    ONE_DAY = 86400
    ONE_WEEK = 604800
    ONE_MONTH = 2592000


def create_redis_client(settings: Settings) -> Redis:
    """Create the process-wide Redis client.

    redis-py connects lazily on the first command. Failed commands are
    retried with capped exponential backoff a bounded number of times.
    """
    return Redis.from_url(
        settings.redis_url,
        decode_responses=False,
        socket_connect_timeout=settings.redis_connect_timeout,
        health_check_interval=settings.redis_health_check_interval,
        retry=Retry(
            ExponentialBackoff(cap=settings.redis_backoff_cap, base=settings.redis_backoff_base),
            settings.redis_max_retries,
        ),
        retry_on_error=[RedisConnectionError, RedisTimeoutError],
    )


@dataclass
class CacheStats:
    """Snapshot of Redis keyspace and hit statistics."""

    keys: int = 0
    memory: str = "N/A"
    hits: int = 0
    misses: int = 0

    @property
    def hit_rate(self) -> float | None:
        """Hit ratio in [0, 1], or None before any lookups."""
        total = self.hits + self.misses
        if total == 0:
            return None
        return self.hits / total

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        hit_rate = self.hit_rate
        return {
            "keys": self.keys,
            "memory": self.memory,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": f"{hit_rate * 100:.2f}%" if hit_rate is not None else "N/A",
        }


class CacheStore:
    """Namespaced JSON cache over Redis.

    Provides get/set/delete/pattern-delete plus counters and sets for
    auxiliary use. Errors are logged and swallowed.
    """

    def __init__(self, client: Redis, prefix: str = "proxyforms:"):
        self.client = client
        self.prefix = prefix

    def key(self, key: str) -> str:
        """Apply the namespace prefix."""
        return f"{self.prefix}{key}"

    def _failed(self, operation: str, key: str, error: BaseException) -> None:
        get_metrics().cache_errors_total.labels(operation=operation).inc()
        logger.warning(f"Cache {operation} failed for {key}: {error}")

    # -------------------------------------------------------------------------
    # Values
    # -------------------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        """Get a decoded value, or None on miss, store error or bad payload."""
        try:
            raw = await self.client.get(self.key(key))
        except STORE_ERRORS as e:
            self._failed("get", key, e)
            return None

        if raw is None:
            return None

        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            self._failed("decode", key, e)
            return None

    async def set(self, key: str, value: Any, ttl: int = CacheTTL.FIVE_MINUTES) -> bool:
        """Store a JSON-encoded value with a TTL in seconds."""
        try:
            payload = orjson.dumps(value)
        except TypeError as e:
            self._failed("encode", key, e)
            return False

        try:
            await self.client.set(self.key(key), payload, ex=int(ttl))
        except STORE_ERRORS as e:
            self._failed("set", key, e)
            return False
        return True

    async def delete(self, key: str) -> bool:
        """Delete a single key."""
        try:
            await self.client.delete(self.key(key))
        except STORE_ERRORS as e:
            self._failed("delete", key, e)
            return False
        return True

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern.

        Walks the keyspace with SCAN so large keyspaces never block Redis.
        Returns the number of keys deleted.
        """
        deleted = 0
        batch: list[bytes | str] = []
        try:
            async for found in self.client.scan_iter(match=self.key(pattern), count=_DELETE_BATCH):
                batch.append(found)
                if len(batch) >= _DELETE_BATCH:
                    deleted += await self.client.delete(*batch)
                    batch = []
            if batch:
                deleted += await self.client.delete(*batch)
        except STORE_ERRORS as e:
            self._failed("delete_pattern", pattern, e)
        return deleted

    async def exists(self, key: str) -> bool:
        """Check if a key exists."""
        try:
            return bool(await self.client.exists(self.key(key)))
        except STORE_ERRORS as e:
            self._failed("exists", key, e)
            return False

    async def ttl(self, key: str) -> int:
        """Remaining TTL in seconds (-2 missing, -1 no expiry or error)."""
        try:
            return int(await self.client.ttl(self.key(key)))
        except STORE_ERRORS as e:
            self._failed("ttl", key, e)
            return -1

    # -------------------------------------------------------------------------
    # Counters and sets
    # -------------------------------------------------------------------------

    async def incr(self, key: str, by: int = 1) -> int:
        """Increment a counter, returning the new value (0 on error)."""
        try:
            return int(await self.client.incrby(self.key(key), by))
        except STORE_ERRORS as e:
            self._failed("incr", key, e)
            return 0

    async def decr(self, key: str, by: int = 1) -> int:
        """Decrement a counter, returning the new value (0 on error)."""
        try:
            return int(await self.client.decrby(self.key(key), by))
        except STORE_ERRORS as e:
            self._failed("decr", key, e)
            return 0

    async def set_add(self, key: str, *members: str) -> int:
        """Add members to a set, returning how many were new."""
        if not members:
            return 0
        try:
            return int(await cast(Awaitable[int], self.client.sadd(self.key(key), *members)))
        except STORE_ERRORS as e:
            self._failed("sadd", key, e)
            return 0

    async def set_members(self, key: str) -> set[str]:
        """All members of a set."""
        try:
            members = await cast(Awaitable[set[bytes]], self.client.smembers(self.key(key)))
        except STORE_ERRORS as e:
            self._failed("smembers", key, e)
            return set()
        return {m.decode() if isinstance(m, bytes) else m for m in members}

    async def set_is_member(self, key: str, member: str) -> bool:
        """Check set membership."""
        try:
            return bool(
                await cast(Awaitable[int], self.client.sismember(self.key(key), member))
            )
        except STORE_ERRORS as e:
            self._failed("sismember", key, e)
            return False

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    async def flush(self) -> bool:
        """Delete every key in this store's namespace.

        Other data sharing the Redis database is left alone.
        """
        try:
            deleted = 0
            async for found in self.client.scan_iter(match=self.key("*"), count=_DELETE_BATCH):
                deleted += await self.client.delete(found)
        except STORE_ERRORS as e:
            self._failed("flush", "*", e)
            return False
        logger.info(f"Flushed {deleted} cache keys")
        return True

    async def stats(self) -> CacheStats:
        """Keyspace size, memory use and hit counters."""
        try:
            keys = await self.client.dbsize()
            memory = await self.client.info("memory")
            counters = await self.client.info("stats")
        except STORE_ERRORS as e:
            self._failed("stats", "*", e)
            return CacheStats()

        return CacheStats(
            keys=int(keys),
            memory=str(memory.get("used_memory_human", "N/A")),
            hits=int(counters.get("keyspace_hits", 0)),
            misses=int(counters.get("keyspace_misses", 0)),
        )

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            await cast(Awaitable[bool], self.client.ping())
            return True
        except STORE_ERRORS as e:
            logger.error(f"Redis health check failed: {e}")
            return False

    async def close(self) -> None:
        """Close Redis connections."""
        await self.client.aclose()
