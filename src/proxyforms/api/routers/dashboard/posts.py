"""Dashboard post endpoints.

Each write evicts the post's single-item keys (old and new slug) and every
cached post list of the blog once the transaction has committed.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Response, status

from proxyforms.api.deps import CurrentUser, OwnedBlogId, Resources
from proxyforms.api.errors import NotFoundError
from proxyforms.persistence import PostRepository, PostTable
from proxyforms.schemas import PostCreate, PostOut, PostUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blogs/{blog_id}/posts", tags=["Dashboard - Posts"])


async def _to_out(repo: PostRepository, post: PostTable) -> PostOut:
    out = PostOut.model_validate(post)
    out.tag_ids = await repo.tag_ids(post.id)
    out.author_ids = await repo.author_ids(post.id)
    return out


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_post(
    blog_id: OwnedBlogId, body: PostCreate, user_id: CurrentUser, resources: Resources
) -> PostOut:
    async with resources.db.session() as session:
        repo = PostRepository(session, blog_id)
        post = await repo.create(user_id, body.model_dump(exclude_unset=True))
        created = await _to_out(repo, post)

    await resources.invalidator.invalidate_post(blog_id, created.id, created.slug)
    logger.info(f"Created post {created.id}")
    return created


@router.put("/{post_id}")
async def update_post(
    blog_id: OwnedBlogId, post_id: UUID, body: PostUpdate, resources: Resources
) -> PostOut:
    async with resources.db.session() as session:
        repo = PostRepository(session, blog_id)
        post = await repo.get(str(post_id))
        if post is None:
            raise NotFoundError(f"Post '{post_id}' not found")
        old_slug = post.slug
        await repo.update(post, body.model_dump(exclude_unset=True))
        updated = await _to_out(repo, post)

    await resources.invalidator.invalidate_post(blog_id, updated.id, old_slug, updated.slug)
    return updated


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(blog_id: OwnedBlogId, post_id: UUID, resources: Resources) -> Response:
    """Soft-delete a post; it disappears from the public API."""
    async with resources.db.session() as session:
        repo = PostRepository(session, blog_id)
        post = await repo.get(str(post_id))
        if post is None:
            raise NotFoundError(f"Post '{post_id}' not found")
        await repo.soft_delete(post)
        slug = post.slug

    await resources.invalidator.invalidate_post(blog_id, str(post_id), slug)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
