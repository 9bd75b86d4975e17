"""Read-side queries composing the public API responses.

Every query is scoped by ``blog_id``. Public post visibility is
``published = true AND deleted = false``, applied identically to page and
count queries.

Post lists are shaped in three steps: the tenant's full tag and author sets
are loaded once, the page's join rows are loaded with a single ``IN`` query
each, and the result is denormalized onto every post in Python. Tag and
author filters run on the fetched page, after pagination:

- tags match with OR semantics (any requested slug)
- an author filter keeps posts listing that author
- ``total`` reflects only the relational conditions

An unknown category or author slug drops that filter rather than producing
an empty page.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from proxyforms.persistence.tables import (
    AuthorTable,
    CategoryTable,
    PostAuthorTable,
    PostTable,
    PostTagTable,
    TagTable,
)
from proxyforms.schemas import (
    Author,
    Category,
    CategoryRef,
    Page,
    PostAuthor,
    PostDetail,
    PostSummary,
    Tag,
    TagRef,
    iso_timestamp,
)


@dataclass
class PostFilters:
    """Pagination and filters for a post list."""

    offset: int = 0
    limit: int = 30
    category: str | None = None
    tags: list[str] = field(default_factory=list)
    author: str | None = None


def _post_author(row: Any) -> PostAuthor:
    return PostAuthor(
        name=row.name,
        slug=row.slug,
        image_url=row.image_url or "",
        bio=row.bio or None,
        website_url=row.website or None,
        twitter_url=row.twitter or None,
    )


def _category_ref(row: Any) -> CategoryRef | None:
    if not row.category_name or not row.category_slug:
        return None
    return CategoryRef(name=row.category_name, slug=row.category_slug)


class ContentQueries:
    """Tenant-scoped read queries over blog content."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _visible(blog_id: str) -> list[Any]:
        return [
            PostTable.blog_id == blog_id,
            PostTable.published.is_(True),
            PostTable.deleted.is_(False),
        ]

    @staticmethod
    def _post_columns() -> Select[Any]:
        return select(
            PostTable.id,
            PostTable.title,
            PostTable.slug,
            PostTable.published_at,
            PostTable.excerpt,
            PostTable.cover_image,
            PostTable.html_content,
            CategoryTable.name.label("category_name"),
            CategoryTable.slug.label("category_slug"),
        ).outerjoin(CategoryTable, PostTable.category_id == CategoryTable.id)

    async def _count(self, table: Any, *conditions: Any) -> int:
        stmt = select(func.count()).select_from(table).where(*conditions)
        return int(await self.session.scalar(stmt) or 0)

    # -------------------------------------------------------------------------
    # Posts
    # -------------------------------------------------------------------------

    async def list_posts(self, blog_id: str, filters: PostFilters) -> Page[PostSummary]:
        """Page of published posts, newest first, with taxonomy denormalized."""
        conditions = self._visible(blog_id)

        if filters.category:
            category_id = await self.session.scalar(
                select(CategoryTable.id).where(
                    CategoryTable.blog_id == blog_id,
                    CategoryTable.slug == filters.category,
                )
            )
            if category_id is not None:
                conditions.append(PostTable.category_id == category_id)

        author_id: int | None = None
        if filters.author:
            author_id = await self.session.scalar(
                select(AuthorTable.id).where(
                    AuthorTable.blog_id == blog_id,
                    AuthorTable.slug == filters.author,
                )
            )

        tenant_tags = (
            await self.session.execute(
                select(TagTable.id, TagTable.name, TagTable.slug)
                .where(TagTable.blog_id == blog_id)
                .order_by(TagTable.created_at, TagTable.id)
            )
        ).all()
        tenant_authors = (
            await self.session.execute(
                select(
                    AuthorTable.id,
                    AuthorTable.name,
                    AuthorTable.slug,
                    AuthorTable.image_url,
                    AuthorTable.bio,
                    AuthorTable.website,
                    AuthorTable.twitter,
                )
                .where(AuthorTable.blog_id == blog_id)
                .order_by(AuthorTable.id)
            )
        ).all()

        stmt = (
            self._post_columns()
            .where(*conditions)
            .order_by(PostTable.published_at.desc().nulls_last())
            .offset(filters.offset)
            .limit(filters.limit)
        )
        rows = (await self.session.execute(stmt)).all()
        total = await self._count(PostTable, *conditions)

        post_ids = [row.id for row in rows]
        tags_by_post: dict[str, set[str]] = defaultdict(set)
        authors_by_post: dict[str, set[int]] = defaultdict(set)
        if post_ids:
            tag_links = await self.session.execute(
                select(PostTagTable.post_id, PostTagTable.tag_id).where(
                    PostTagTable.blog_id == blog_id,
                    PostTagTable.post_id.in_(post_ids),
                )
            )
            for post_id, tag_id in tag_links:
                tags_by_post[post_id].add(tag_id)

            author_links = await self.session.execute(
                select(PostAuthorTable.post_id, PostAuthorTable.author_id).where(
                    PostAuthorTable.blog_id == blog_id,
                    PostAuthorTable.post_id.in_(post_ids),
                )
            )
            for post_id, linked_author in author_links:
                authors_by_post[post_id].add(linked_author)

        wanted_tags = set(filters.tags)
        data: list[PostSummary] = []
        for row in rows:
            post_tags = [t for t in tenant_tags if t.id in tags_by_post[row.id]]
            if wanted_tags and not wanted_tags.intersection(t.slug for t in post_tags):
                continue
            if author_id is not None and author_id not in authors_by_post[row.id]:
                continue

            data.append(
                PostSummary(
                    title=row.title,
                    slug=row.slug,
                    published_at=iso_timestamp(row.published_at),
                    excerpt=row.excerpt,
                    cover_image=row.cover_image,
                    category=_category_ref(row),
                    tags=[TagRef(name=t.name, slug=t.slug) for t in post_tags],
                    authors=[
                        _post_author(a) for a in tenant_authors if a.id in authors_by_post[row.id]
                    ],
                )
            )

        return Page[PostSummary](
            data=data, total=total, offset=filters.offset, limit=filters.limit
        )

    async def get_post_by_slug(self, blog_id: str, slug: str) -> PostDetail | None:
        """Single published post with body, or None."""
        stmt = (
            self._post_columns()
            .where(*self._visible(blog_id), PostTable.slug == slug)
            .limit(1)
        )
        row = (await self.session.execute(stmt)).first()
        if row is None:
            return None

        tag_rows = await self.session.execute(
            select(TagTable.name, TagTable.slug)
            .join(PostTagTable, PostTagTable.tag_id == TagTable.id)
            .where(PostTagTable.post_id == row.id, TagTable.blog_id == blog_id)
            .order_by(TagTable.created_at, TagTable.id)
        )
        author_rows = await self.session.execute(
            select(
                AuthorTable.name,
                AuthorTable.slug,
                AuthorTable.image_url,
                AuthorTable.bio,
                AuthorTable.website,
                AuthorTable.twitter,
            )
            .join(PostAuthorTable, PostAuthorTable.author_id == AuthorTable.id)
            .where(PostAuthorTable.post_id == row.id, AuthorTable.blog_id == blog_id)
            .order_by(AuthorTable.id)
        )

        return PostDetail(
            title=row.title or "",
            slug=row.slug or "",
            published_at=iso_timestamp(row.published_at) or "",
            excerpt=row.excerpt or "",
            cover_image=row.cover_image or "",
            category=_category_ref(row),
            tags=[TagRef(name=t.name, slug=t.slug) for t in tag_rows],
            authors=[_post_author(a) for a in author_rows],
            html_content=row.html_content or "",
        )

    # -------------------------------------------------------------------------
    # Taxonomy
    # -------------------------------------------------------------------------

    async def list_categories(self, blog_id: str, offset: int, limit: int) -> Page[Category]:
        rows = await self.session.execute(
            select(CategoryTable.name, CategoryTable.slug)
            .where(CategoryTable.blog_id == blog_id)
            .order_by(CategoryTable.id)
            .offset(offset)
            .limit(limit)
        )
        total = await self._count(CategoryTable, CategoryTable.blog_id == blog_id)
        return Page[Category](
            data=[Category(name=r.name, slug=r.slug) for r in rows],
            total=total,
            offset=offset,
            limit=limit,
        )

    async def list_tags(self, blog_id: str, offset: int, limit: int) -> Page[Tag]:
        rows = await self.session.execute(
            select(TagTable.name, TagTable.slug)
            .where(TagTable.blog_id == blog_id)
            .order_by(TagTable.created_at, TagTable.id)
            .offset(offset)
            .limit(limit)
        )
        total = await self._count(TagTable, TagTable.blog_id == blog_id)
        return Page[Tag](
            data=[Tag(name=r.name, slug=r.slug) for r in rows],
            total=total,
            offset=offset,
            limit=limit,
        )

    @staticmethod
    def _author_columns() -> Select[Any]:
        return select(
            AuthorTable.name,
            AuthorTable.slug,
            AuthorTable.image_url,
            AuthorTable.twitter,
            AuthorTable.website,
            AuthorTable.bio,
        )

    async def list_authors(self, blog_id: str, offset: int, limit: int) -> Page[Author]:
        rows = await self.session.execute(
            self._author_columns()
            .where(AuthorTable.blog_id == blog_id)
            .order_by(AuthorTable.id)
            .offset(offset)
            .limit(limit)
        )
        total = await self._count(AuthorTable, AuthorTable.blog_id == blog_id)
        return Page[Author](
            data=[Author.model_validate(r._asdict()) for r in rows],
            total=total,
            offset=offset,
            limit=limit,
        )

    async def get_author_by_slug(self, blog_id: str, slug: str) -> Author | None:
        """Single author, with missing profile fields as empty strings."""
        row = (
            await self.session.execute(
                self._author_columns()
                .where(AuthorTable.blog_id == blog_id, AuthorTable.slug == slug)
                .limit(1)
            )
        ).first()
        if row is None:
            return None
        return Author(
            name=row.name,
            slug=row.slug,
            image_url=row.image_url or "",
            twitter=row.twitter or "",
            website=row.website or "",
            bio=row.bio or "",
        )
