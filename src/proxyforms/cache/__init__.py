"""Cache layer for ProxyForms.

Provides Redis caching with the cache-aside pattern:
- Public read responses are cached under tenant-scoped keys
- Population happens in detached tasks after the response value is computed
- TTL tiers bound staleness per resource
- Pattern-based invalidation runs after every dashboard write
"""

from proxyforms.cache.aside import CacheAside
from proxyforms.cache.invalidation import CacheInvalidator
from proxyforms.cache.keys import CacheKeys, normalize_tags
from proxyforms.cache.redis import CacheStats, CacheStore, CacheTTL, create_redis_client

__all__ = [
    # Core cache
    "CacheKeys",
    "CacheStore",
    "CacheStats",
    "CacheTTL",
    "create_redis_client",
    "normalize_tags",
    # Read path
    "CacheAside",
    # Write path
    "CacheInvalidator",
]
