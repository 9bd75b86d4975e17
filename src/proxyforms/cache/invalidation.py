"""Cache invalidation hooks for dashboard writes.

Every mutation of tenant content calls the matching hook after the relational
write has committed. Point deletes evict single-item keys; pattern deletes
evict every page and filter combination of a list resource for the tenant.

Posts embed category, tag and author names. Renaming a taxonomy entry does
not evict post caches; the stale names age out with the post list TTL.

Example:
    invalidator = CacheInvalidator(store)

    # After a post update that changed its slug
    await invalidator.invalidate_post(blog_id, post_id, old_slug, new_slug)
"""

from __future__ import annotations

import logging

from proxyforms.cache.keys import CacheKeys
from proxyforms.cache.redis import CacheStore

logger = logging.getLogger(__name__)


class CacheInvalidator:
    """Evicts derived cache entries for a tenant."""

    def __init__(self, store: CacheStore):
        self.store = store

    async def invalidate_post(self, blog_id: str, post_id: str, *slugs: str | None) -> int:
        """Evict a post's single-item keys and every post list of the tenant.

        Pass both the old and the new slug when a post was renamed.
        """
        await self.store.delete(CacheKeys.post_by_id(blog_id, post_id))
        for slug in {s for s in slugs if s}:
            await self.store.delete(CacheKeys.post_by_slug(blog_id, slug))

        deleted = await self.store.delete_pattern(CacheKeys.pattern("posts", blog_id))
        logger.debug(f"Invalidated post {post_id} and {deleted} post lists for blog {blog_id}")
        return deleted

    async def invalidate_categories(self, blog_id: str) -> int:
        """Evict every category list page of the tenant."""
        return await self.store.delete_pattern(CacheKeys.pattern("categories", blog_id))

    async def invalidate_tags(self, blog_id: str) -> int:
        """Evict every tag list page of the tenant."""
        return await self.store.delete_pattern(CacheKeys.pattern("tags", blog_id))

    async def invalidate_authors(self, blog_id: str, *slugs: str | None) -> int:
        """Evict the named author records and every author list of the tenant."""
        for slug in {s for s in slugs if s}:
            await self.store.delete(CacheKeys.author_by_slug(blog_id, slug))
        return await self.store.delete_pattern(CacheKeys.pattern("authors", blog_id))

    async def invalidate_blog_record(self, blog_id: str) -> bool:
        """Evict the cached blog record."""
        return await self.store.delete(CacheKeys.blog(blog_id))

    async def invalidate_blog(self, blog_id: str) -> int:
        """Evict every cached entry of the tenant.

        Used when a blog is deleted. Returns the number of keys removed by
        pattern deletion.
        """
        deleted = 0
        for resource in ("posts", "post", "categories", "tags", "authors", "author"):
            deleted += await self.store.delete_pattern(CacheKeys.pattern(resource, blog_id))
        await self.invalidate_blog_record(blog_id)
        logger.info(f"Invalidated {deleted} cache entries for blog {blog_id}")
        return deleted
