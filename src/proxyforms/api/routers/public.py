"""Public content API.

Read-only, tenant-scoped endpoints consumed by blog front ends:
- GET /{blog_id}/posts - Paginated published posts with filters
- GET /{blog_id}/posts/{slug} - Single published post
- GET /{blog_id}/categories - Paginated categories
- GET /{blog_id}/tags - Paginated tags
- GET /{blog_id}/authors - Paginated authors
- GET /{blog_id}/authors/{slug} - Single author

Every endpoint goes through the cache-aside layer. The cached value is the
complete response envelope, so a hit is served without touching the database.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Query, Response

from proxyforms.api.deps import PublicBlogId, Resources, require_slug
from proxyforms.api.errors import AuthorNotFoundError, MissingBlogIdError, PostNotFoundError
from proxyforms.api.pagination import DEFAULT_LIMIT, LimitParam, OffsetParam
from proxyforms.api.responses import json_response
from proxyforms.cache import CacheKeys, CacheTTL, normalize_tags
from proxyforms.persistence import ContentQueries, PostFilters
from proxyforms.schemas import Author, Item, PostDetail

router = APIRouter(tags=["Public API"])


def _filter(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


# An empty tenant segment never matches "/{blog_id}/..."; answer it explicitly
@router.get("//{rest:path}", include_in_schema=False)
async def missing_blog_id(rest: str) -> Response:
    raise MissingBlogIdError()


@router.get("/{blog_id}/posts")
async def list_posts(
    blog_id: PublicBlogId,
    resources: Resources,
    offset: OffsetParam = 0,
    limit: LimitParam = DEFAULT_LIMIT,
    category: Annotated[str | None, Query(description="Category slug")] = None,
    tags: Annotated[str | None, Query(description="Comma-separated tag slugs")] = None,
    author: Annotated[str | None, Query(description="Author slug")] = None,
) -> Response:
    """List published posts, newest first."""
    filters = PostFilters(
        offset=offset,
        limit=limit,
        category=_filter(category),
        tags=normalize_tags(tags),
        author=_filter(author),
    )
    key = CacheKeys.posts_list(
        blog_id, offset, limit, filters.category, filters.tags, filters.author
    )

    async def fetch() -> dict[str, Any]:
        async with resources.db.session() as session:
            page = await ContentQueries(session).list_posts(blog_id, filters)
        return page.model_dump(mode="json")

    payload = await resources.cache.get_or_set(key, CacheTTL.FIVE_MINUTES, fetch)
    return json_response(payload)


@router.get("/{blog_id}/posts/{slug}")
async def get_post(blog_id: PublicBlogId, slug: str, resources: Resources) -> Response:
    """Get a single published post with its HTML body."""
    slug = require_slug(slug)

    async def fetch() -> dict[str, Any]:
        async with resources.db.session() as session:
            post = await ContentQueries(session).get_post_by_slug(blog_id, slug)
        if post is None:
            raise PostNotFoundError(slug)
        return Item[PostDetail](data=post).model_dump(mode="json")

    payload = await resources.cache.get_or_set(
        CacheKeys.post_by_slug(blog_id, slug), CacheTTL.TEN_MINUTES, fetch
    )
    return json_response(payload)


@router.get("/{blog_id}/categories")
async def list_categories(
    blog_id: PublicBlogId,
    resources: Resources,
    offset: OffsetParam = 0,
    limit: LimitParam = DEFAULT_LIMIT,
) -> Response:
    """List categories."""

    async def fetch() -> dict[str, Any]:
        async with resources.db.session() as session:
            page = await ContentQueries(session).list_categories(blog_id, offset, limit)
        return page.model_dump(mode="json")

    payload = await resources.cache.get_or_set(
        CacheKeys.categories_list(blog_id, offset, limit), CacheTTL.THIRTY_MINUTES, fetch
    )
    return json_response(payload)


@router.get("/{blog_id}/tags")
async def list_tags(
    blog_id: PublicBlogId,
    resources: Resources,
    offset: OffsetParam = 0,
    limit: LimitParam = DEFAULT_LIMIT,
) -> Response:
    """List tags."""

    async def fetch() -> dict[str, Any]:
        async with resources.db.session() as session:
            page = await ContentQueries(session).list_tags(blog_id, offset, limit)
        return page.model_dump(mode="json")

    payload = await resources.cache.get_or_set(
        CacheKeys.tags_list(blog_id, offset, limit), CacheTTL.THIRTY_MINUTES, fetch
    )
    return json_response(payload)


@router.get("/{blog_id}/authors")
async def list_authors(
    blog_id: PublicBlogId,
    resources: Resources,
    offset: OffsetParam = 0,
    limit: LimitParam = DEFAULT_LIMIT,
) -> Response:
    """List authors."""

    async def fetch() -> dict[str, Any]:
        async with resources.db.session() as session:
            page = await ContentQueries(session).list_authors(blog_id, offset, limit)
        return page.model_dump(mode="json")

    payload = await resources.cache.get_or_set(
        CacheKeys.authors_list(blog_id, offset, limit), CacheTTL.THIRTY_MINUTES, fetch
    )
    return json_response(payload)


@router.get("/{blog_id}/authors/{slug}")
async def get_author(blog_id: PublicBlogId, slug: str, resources: Resources) -> Response:
    """Get a single author profile."""
    slug = require_slug(slug)

    async def fetch() -> dict[str, Any]:
        async with resources.db.session() as session:
            author = await ContentQueries(session).get_author_by_slug(blog_id, slug)
        if author is None:
            raise AuthorNotFoundError(slug)
        return Item[Author](data=author).model_dump(mode="json")

    payload = await resources.cache.get_or_set(
        CacheKeys.author_by_slug(blog_id, slug), CacheTTL.THIRTY_MINUTES, fetch
    )
    return json_response(payload)
