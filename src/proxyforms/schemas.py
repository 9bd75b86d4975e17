"""Pydantic models for API payloads.

Read models describe the public API response shapes. They are also what the
cache stores: a cached entry is exactly ``model_dump(mode="json")`` of the
response envelope.

Write models describe dashboard input. Fields left out of an update payload
are not touched.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


def iso_timestamp(value: datetime | None) -> str | None:
    """ISO-8601 string for a stored timestamp, treating naive values as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


# =============================================================================
# Public read models
# =============================================================================


class CategoryRef(BaseModel):
    name: str
    slug: str


class TagRef(BaseModel):
    name: str
    slug: str


class PostAuthor(BaseModel):
    """Author as embedded in a post."""

    name: str
    slug: str
    image_url: str = ""
    bio: str | None = None
    website_url: str | None = None
    twitter_url: str | None = None


class PostSummary(BaseModel):
    """Post as it appears in a list page (no body)."""

    title: str
    slug: str
    published_at: str | None = None
    excerpt: str | None = None
    cover_image: str | None = None
    category: CategoryRef | None = None
    tags: list[TagRef] = Field(default_factory=list)
    authors: list[PostAuthor] = Field(default_factory=list)


class PostDetail(BaseModel):
    """Single post with its rendered body. Missing text fields are empty."""

    title: str = ""
    slug: str = ""
    published_at: str = ""
    excerpt: str = ""
    cover_image: str = ""
    category: CategoryRef | None = None
    tags: list[TagRef] = Field(default_factory=list)
    authors: list[PostAuthor] = Field(default_factory=list)
    html_content: str = ""


class Category(BaseModel):
    name: str
    slug: str


class Tag(BaseModel):
    name: str
    slug: str


class Author(BaseModel):
    name: str
    slug: str
    image_url: str | None = None
    twitter: str | None = None
    website: str | None = None
    bio: str | None = None


class Page(BaseModel, Generic[T]):
    """A page of a tenant-scoped collection.

    ``total`` counts every row matching the relational conditions, so it may
    overstate the page when application-side filters are active.
    """

    data: list[T]
    total: int
    offset: int
    limit: int


class Item(BaseModel, Generic[T]):
    """Single-item envelope."""

    data: T


# =============================================================================
# Dashboard write models
# =============================================================================


class BlogCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1)
    description: str | None = None
    emoji: str | None = None
    slug: str | None = None
    theme: str | None = None


class BlogUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    emoji: str | None = None
    slug: str | None = None
    theme: str | None = None
    active: bool | None = None


class BlogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str
    description: str | None = None
    emoji: str | None = None
    slug: str | None = None
    theme: str | None = None
    active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PostCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1)
    slug: str = Field(min_length=1)
    excerpt: str | None = None
    html_content: str | None = None
    content: dict[str, Any] | None = None
    cover_image: str | None = None
    category_id: int | None = None
    published: bool = False
    published_at: datetime | None = None
    meta: dict[str, Any] | None = None
    tag_ids: list[UUID] = Field(default_factory=list)
    author_ids: list[int] = Field(default_factory=list)


class PostUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1)
    slug: str | None = Field(default=None, min_length=1)
    excerpt: str | None = None
    html_content: str | None = None
    content: dict[str, Any] | None = None
    cover_image: str | None = None
    category_id: int | None = None
    published: bool | None = None
    published_at: datetime | None = None
    meta: dict[str, Any] | None = None
    tag_ids: list[UUID] | None = None
    author_ids: list[int] | None = None


class PostOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    blog_id: str
    title: str
    slug: str
    excerpt: str | None = None
    html_content: str | None = None
    cover_image: str | None = None
    category_id: int | None = None
    published: bool
    published_at: datetime | None = None
    deleted: bool
    tag_ids: list[str] = Field(default_factory=list)
    author_ids: list[int] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CategoryCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    slug: str = Field(min_length=1)


class CategoryUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    slug: str | None = Field(default=None, min_length=1)


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    blog_id: str
    name: str
    slug: str


class TagCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    slug: str = Field(min_length=1)
    description: str | None = None


class TagUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    slug: str | None = Field(default=None, min_length=1)
    description: str | None = None


class TagOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    blog_id: str
    name: str
    slug: str
    description: str | None = None


class AuthorCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    slug: str = Field(min_length=1)
    bio: str | None = None
    image_url: str | None = None
    twitter: str | None = None
    website: str | None = None


class AuthorUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    slug: str | None = Field(default=None, min_length=1)
    bio: str | None = None
    image_url: str | None = None
    twitter: str | None = None
    website: str | None = None


class AuthorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    blog_id: str
    name: str
    slug: str
    bio: str | None = None
    image_url: str | None = None
    twitter: str | None = None
    website: str | None = None
