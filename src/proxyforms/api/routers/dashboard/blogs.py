"""Dashboard blog endpoints.

Blogs are owned by the user who created them. Another user's blog answers
404 exactly like a missing one.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Response, status

from proxyforms.api.deps import CurrentUser, OwnedBlogId, Resources
from proxyforms.api.errors import NotFoundError
from proxyforms.api.responses import json_response
from proxyforms.cache import CacheKeys, CacheTTL
from proxyforms.persistence import BlogRepository
from proxyforms.schemas import BlogCreate, BlogOut, BlogUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blogs", tags=["Dashboard - Blogs"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_blog(body: BlogCreate, user_id: CurrentUser, resources: Resources) -> BlogOut:
    async with resources.db.session() as session:
        blog = await BlogRepository(session).create(user_id, body.model_dump(exclude_unset=True))
        created = BlogOut.model_validate(blog)
    logger.info(f"Created blog {created.id}")
    return created


@router.get("/{blog_id}")
async def get_blog(blog_id: OwnedBlogId, resources: Resources) -> Response:
    """Get the blog record (cached for an hour)."""

    async def fetch() -> dict[str, Any]:
        async with resources.db.session() as session:
            blog = await BlogRepository(session).get(blog_id)
            if blog is None:
                raise NotFoundError(f"Blog '{blog_id}' not found")
            return BlogOut.model_validate(blog).model_dump(mode="json")

    payload = await resources.cache.get_or_set(CacheKeys.blog(blog_id), CacheTTL.ONE_HOUR, fetch)
    return json_response(payload)


@router.put("/{blog_id}")
async def update_blog(
    blog_id: OwnedBlogId, body: BlogUpdate, resources: Resources
) -> BlogOut:
    async with resources.db.session() as session:
        repo = BlogRepository(session)
        blog = await repo.get(blog_id)
        if blog is None:
            raise NotFoundError(f"Blog '{blog_id}' not found")
        await repo.update(blog, body.model_dump(exclude_unset=True))
        updated = BlogOut.model_validate(blog)

    await resources.invalidator.invalidate_blog_record(blog_id)
    return updated


@router.delete("/{blog_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_blog(blog_id: OwnedBlogId, resources: Resources) -> Response:
    """Delete a blog and all its content, then evict every cached entry."""
    async with resources.db.session() as session:
        repo = BlogRepository(session)
        blog = await repo.get(blog_id)
        if blog is None:
            raise NotFoundError(f"Blog '{blog_id}' not found")
        await repo.delete(blog)

    await resources.invalidator.invalidate_blog(blog_id)
    logger.info(f"Deleted blog {blog_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
