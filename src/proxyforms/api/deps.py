"""Shared FastAPI dependencies for ProxyForms routers.

Provides reusable components to reduce boilerplate across API endpoints:
- Process-wide resources (database, cache, background tasks)
- Blog id validation and tenant log context
- Authenticated user resolution for dashboard routes
"""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header, Path, Request

from proxyforms.api.errors import (
    InvalidBlogIdError,
    MissingBlogIdError,
    MissingBlogIdOrSlugError,
    NotFoundError,
    UnauthorizedError,
)
from proxyforms.api.resources import AppResources
from proxyforms.observability.logging import blog_id_var, user_id_var
from proxyforms.persistence.repositories import BlogRepository


def get_resources(request: Request) -> AppResources:
    """Resources opened by the application lifespan."""
    return request.app.state.resources  # type: ignore[no-any-return]


Resources = Annotated[AppResources, Depends(get_resources)]


# =============================================================================
# Tenant identifiers
# =============================================================================


def validate_blog_id(raw: str | None) -> str:
    """Normalize a blog id to its canonical UUID form.

    Raises:
        MissingBlogIdError: If the id is blank
        InvalidBlogIdError: If the id is not a UUID
    """
    value = (raw or "").strip()
    if not value:
        raise MissingBlogIdError()
    try:
        return str(uuid.UUID(value))
    except ValueError:
        raise InvalidBlogIdError(value)


def require_slug(raw: str | None) -> str:
    """Reject a blank slug with MISSING_BLOG_ID_OR_SLUG."""
    value = (raw or "").strip()
    if not value:
        raise MissingBlogIdOrSlugError()
    return value


async def public_blog_id(
    request: Request,
    resources: Resources,
    blog_id: Annotated[str, Path(description="Blog (tenant) id")],
) -> str:
    """Validate the tenant of a public request and meter the request.

    Usage is recorded once per request, whether or not it is served from
    cache, and never blocks the response.
    """
    blog_id = validate_blog_id(blog_id)
    blog_id_var.set(blog_id)
    resources.usage.record(blog_id, str(request.url))
    return blog_id


PublicBlogId = Annotated[str, Depends(public_blog_id)]


# =============================================================================
# Dashboard authentication
# =============================================================================


def current_user_id(
    x_user_id: Annotated[str | None, Header(alias="X-User-ID")] = None,
) -> str:
    """The authenticated user id set by the upstream auth provider."""
    if not x_user_id or not x_user_id.strip():
        raise UnauthorizedError()
    user_id = x_user_id.strip()
    user_id_var.set(user_id)
    return user_id


CurrentUser = Annotated[str, Depends(current_user_id)]


async def owned_blog_id(
    resources: Resources,
    user_id: CurrentUser,
    blog_id: Annotated[str, Path(description="Blog (tenant) id")],
) -> str:
    """Blog id of a blog the current user owns; other blogs look absent."""
    blog_id = validate_blog_id(blog_id)
    async with resources.db.session() as session:
        blog = await BlogRepository(session).get_owned(blog_id, user_id)
    if blog is None:
        raise NotFoundError(f"Blog '{blog_id}' not found")
    blog_id_var.set(blog_id)
    return blog_id


OwnedBlogId = Annotated[str, Depends(owned_blog_id)]
