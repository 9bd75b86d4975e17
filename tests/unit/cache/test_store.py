"""Tests for the Redis cache store."""

import pytest

from proxyforms.cache import CacheStats, CacheStore, CacheTTL


class TestCacheStoreValues:
    """Test JSON value operations."""

    @pytest.mark.asyncio
    async def test_set_then_get(self, store: CacheStore) -> None:
        """Values round-trip through JSON."""
        payload = {"data": [{"slug": "a"}], "total": 1, "offset": 0, "limit": 30}
        assert await store.set("posts:b:0:30", payload, CacheTTL.FIVE_MINUTES)
        assert await store.get("posts:b:0:30") == payload

    @pytest.mark.asyncio
    async def test_keys_are_prefixed(self, store: CacheStore, redis_client) -> None:
        """Every key is written under the namespace prefix."""
        await store.set("blog:b", {"id": "b"})
        assert list(redis_client.values) == ["proxyforms:blog:b"]

    @pytest.mark.asyncio
    async def test_ttl_applied(self, store: CacheStore) -> None:
        """The TTL tier is passed to Redis in seconds."""
        await store.set("tags:b:0:30", [], CacheTTL.THIRTY_MINUTES)
        assert 1790 <= await store.ttl("tags:b:0:30") <= 1800

    @pytest.mark.asyncio
    async def test_missing_key(self, store: CacheStore) -> None:
        """Missing keys read as None."""
        assert await store.get("post:b:slug:none") is None
        assert await store.exists("post:b:slug:none") is False

    @pytest.mark.asyncio
    async def test_undecodable_payload_is_a_miss(self, store: CacheStore, redis_client) -> None:
        """Corrupt entries are treated as misses, not errors."""
        redis_client.values["proxyforms:post:b:slug:x"] = b"{not json"
        assert await store.get("post:b:slug:x") is None

    @pytest.mark.asyncio
    async def test_unencodable_value_not_stored(self, store: CacheStore) -> None:
        """Values orjson cannot encode are rejected."""
        assert await store.set("blog:b", {"value": object()}) is False
        assert await store.exists("blog:b") is False

    @pytest.mark.asyncio
    async def test_delete(self, store: CacheStore) -> None:
        """Delete removes a single key."""
        await store.set("blog:b", {"id": "b"})
        assert await store.delete("blog:b")
        assert await store.get("blog:b") is None


class TestCacheStorePatterns:
    """Test pattern deletion and flush."""

    @pytest.mark.asyncio
    async def test_delete_pattern_counts(self, store: CacheStore) -> None:
        """Pattern delete removes matching keys and reports the count."""
        await store.set("posts:b1:0:30:all:all:all", [])
        await store.set("posts:b1:30:30:all:all:all", [])
        await store.set("posts:b2:0:30:all:all:all", [])
        await store.set("post:b1:slug:x", {})

        assert await store.delete_pattern("posts:b1:*") == 2
        assert await store.exists("posts:b2:0:30:all:all:all")
        assert await store.exists("post:b1:slug:x")

    @pytest.mark.asyncio
    async def test_delete_pattern_no_match(self, store: CacheStore) -> None:
        """Nothing to delete is not an error."""
        assert await store.delete_pattern("posts:none:*") == 0

    @pytest.mark.asyncio
    async def test_flush_only_touches_namespace(self, store: CacheStore, redis_client) -> None:
        """Foreign keys in the same database survive a flush."""
        await store.set("blog:b", {"id": "b"})
        redis_client.values["sessions:abc"] = b"1"

        assert await store.flush()
        assert list(redis_client.values) == ["sessions:abc"]


class TestCacheStoreCountersAndSets:
    """Test counter and set helpers."""

    @pytest.mark.asyncio
    async def test_incr_decr(self, store: CacheStore) -> None:
        """Counters move both ways."""
        assert await store.incr("counter") == 1
        assert await store.incr("counter", 4) == 5
        assert await store.decr("counter", 2) == 3

    @pytest.mark.asyncio
    async def test_sets(self, store: CacheStore) -> None:
        """Set members are returned as strings."""
        assert await store.set_add("seen", "a", "b") == 2
        assert await store.set_add("seen", "a") == 0
        assert await store.set_members("seen") == {"a", "b"}
        assert await store.set_is_member("seen", "a")
        assert not await store.set_is_member("seen", "z")

    @pytest.mark.asyncio
    async def test_set_add_without_members(self, store: CacheStore) -> None:
        """Adding nothing is a no-op."""
        assert await store.set_add("seen") == 0


class TestCacheStoreUnavailable:
    """Every operation degrades to a neutral value when Redis is down."""

    @pytest.mark.asyncio
    async def test_neutral_values(self, store: CacheStore, redis_client) -> None:
        """Failures never raise."""
        redis_client.down = True

        assert await store.get("blog:b") is None
        assert await store.set("blog:b", {"id": "b"}) is False
        assert await store.delete("blog:b") is False
        assert await store.delete_pattern("posts:b:*") == 0
        assert await store.exists("blog:b") is False
        assert await store.ttl("blog:b") == -1
        assert await store.incr("counter") == 0
        assert await store.set_members("seen") == set()
        assert await store.flush() is False
        assert await store.health_check() is False

    @pytest.mark.asyncio
    async def test_stats_when_down(self, store: CacheStore, redis_client) -> None:
        """Stats fall back to an empty snapshot."""
        redis_client.down = True
        stats = await store.stats()
        assert stats.keys == 0
        assert stats.memory == "N/A"


class TestCacheStats:
    """Test statistics snapshots."""

    @pytest.mark.asyncio
    async def test_stats_from_redis(self, store: CacheStore) -> None:
        """Keyspace size, memory and hit counters are collected."""
        await store.set("blog:b", {"id": "b"})
        await store.get("blog:b")
        await store.get("blog:missing")

        stats = await store.stats()
        assert stats.keys == 1
        assert stats.memory == "1.00M"
        assert stats.hits == 1
        assert stats.misses == 1

    def test_hit_rate(self) -> None:
        """Hit rate is formatted as a percentage."""
        stats = CacheStats(keys=3, memory="1M", hits=3, misses=1)
        assert stats.hit_rate == 0.75
        assert stats.to_dict()["hit_rate"] == "75.00%"

    def test_hit_rate_without_lookups(self) -> None:
        """No lookups yet means no rate."""
        stats = CacheStats()
        assert stats.hit_rate is None
        assert stats.to_dict()["hit_rate"] == "N/A"

    @pytest.mark.asyncio
    async def test_close(self, store: CacheStore, redis_client) -> None:
        """Close releases the client."""
        await store.close()
        assert redis_client.closed
