"""Repository pattern for dashboard writes.

Repositories operate inside a caller-owned session; the caller commits (see
``Database.session``) and only then runs cache invalidation.

Unique violations surface as ``DuplicateSlugError`` when the session flushes.
References to rows of another tenant (category, tags, authors) are rejected
with ``InvalidReferenceError`` before anything is written.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from proxyforms.persistence.tables import (
    AuthorTable,
    BlogTable,
    CategoryTable,
    PostAuthorTable,
    PostTable,
    PostTagTable,
    TagTable,
    utcnow,
)

TableT = TypeVar("TableT", CategoryTable, TagTable, AuthorTable)


class DuplicateSlugError(Exception):
    """A unique (blog_id, slug) or (blog_id, name) constraint was violated."""


class InvalidReferenceError(Exception):
    """A referenced row does not exist within the tenant."""


def _is_unique_violation(error: IntegrityError) -> bool:
    orig = error.orig
    # asyncpg exposes the SQLSTATE; SQLite only has the message
    if getattr(orig, "sqlstate", None) == "23505" or getattr(orig, "pgcode", None) == "23505":
        return True
    message = str(orig)
    return "UNIQUE constraint failed" in message or "duplicate key value" in message


async def _flush(session: AsyncSession) -> None:
    try:
        await session.flush()
    except IntegrityError as e:
        if _is_unique_violation(e):
            raise DuplicateSlugError("Slug already exists for this blog") from e
        raise


class BlogRepository:
    """Blog (tenant) records, scoped to their owning user."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, blog_id: str) -> BlogTable | None:
        return await self.session.get(BlogTable, blog_id)

    async def get_owned(self, blog_id: str, user_id: str) -> BlogTable | None:
        """The blog if it exists and belongs to ``user_id``."""
        blog = await self.get(blog_id)
        if blog is None or blog.user_id != user_id:
            return None
        return blog

    async def create(self, user_id: str, fields: dict[str, Any]) -> BlogTable:
        blog = BlogTable(user_id=user_id, **fields)
        self.session.add(blog)
        await _flush(self.session)
        return blog

    async def update(self, blog: BlogTable, fields: dict[str, Any]) -> BlogTable:
        for name, value in fields.items():
            setattr(blog, name, value)
        await _flush(self.session)
        return blog

    async def delete(self, blog: BlogTable) -> None:
        """Hard delete; content rows go with it through foreign key cascades."""
        await self.session.delete(blog)
        await _flush(self.session)


class PostRepository:
    """Posts of one blog, with their tag and author associations."""

    def __init__(self, session: AsyncSession, blog_id: str):
        self.session = session
        self.blog_id = blog_id

    async def get(self, post_id: str) -> PostTable | None:
        """A post of this blog that has not been soft-deleted."""
        post = await self.session.get(PostTable, post_id)
        if post is None or post.blog_id != self.blog_id or post.deleted:
            return None
        return post

    async def create(self, user_id: str, fields: dict[str, Any]) -> PostTable:
        tag_ids = [str(t) for t in fields.pop("tag_ids", None) or []]
        author_ids = list(fields.pop("author_ids", None) or [])
        await self._check_category(fields.get("category_id"))

        if fields.get("published") and fields.get("published_at") is None:
            fields["published_at"] = utcnow()

        post = PostTable(blog_id=self.blog_id, user_id=user_id, **fields)
        self.session.add(post)
        await _flush(self.session)

        await self._set_tags(post.id, tag_ids)
        await self._set_authors(post.id, author_ids)
        return post

    async def update(self, post: PostTable, fields: dict[str, Any]) -> PostTable:
        """Apply a partial update.

        Tag and author associations are replaced only when their key is
        present in ``fields``.
        """
        tag_ids = fields.pop("tag_ids", None)
        author_ids = fields.pop("author_ids", None)
        if "category_id" in fields:
            await self._check_category(fields["category_id"])

        for name, value in fields.items():
            setattr(post, name, value)
        if post.published and post.published_at is None:
            post.published_at = utcnow()
        await _flush(self.session)

        if tag_ids is not None:
            await self._set_tags(post.id, [str(t) for t in tag_ids])
        if author_ids is not None:
            await self._set_authors(post.id, list(author_ids))
        return post

    async def soft_delete(self, post: PostTable) -> None:
        post.deleted = True
        await _flush(self.session)

    async def tag_ids(self, post_id: str) -> list[str]:
        rows = await self.session.scalars(
            select(PostTagTable.tag_id)
            .where(PostTagTable.post_id == post_id)
            .order_by(PostTagTable.id)
        )
        return list(rows)

    async def author_ids(self, post_id: str) -> list[int]:
        rows = await self.session.scalars(
            select(PostAuthorTable.author_id)
            .where(PostAuthorTable.post_id == post_id)
            .order_by(PostAuthorTable.id)
        )
        return list(rows)

    async def _check_category(self, category_id: int | None) -> None:
        if category_id is None:
            return
        found = await self.session.scalar(
            select(CategoryTable.id).where(
                CategoryTable.id == category_id,
                CategoryTable.blog_id == self.blog_id,
            )
        )
        if found is None:
            raise InvalidReferenceError(f"Category {category_id} not found")

    async def _owned_ids(self, table: Any, ids: Iterable[Any]) -> set[Any]:
        wanted = list(dict.fromkeys(ids))
        if not wanted:
            return set()
        found = set(
            await self.session.scalars(
                select(table.id).where(table.blog_id == self.blog_id, table.id.in_(wanted))
            )
        )
        missing = [i for i in wanted if i not in found]
        if missing:
            raise InvalidReferenceError(
                f"{table.__name__.removesuffix('Table')} not found: "
                + ", ".join(str(i) for i in missing)
            )
        return found

    async def _set_tags(self, post_id: str, tag_ids: list[str]) -> None:
        await self._owned_ids(TagTable, tag_ids)
        await self.session.execute(delete(PostTagTable).where(PostTagTable.post_id == post_id))
        for tag_id in dict.fromkeys(tag_ids):
            self.session.add(PostTagTable(blog_id=self.blog_id, post_id=post_id, tag_id=tag_id))
        await _flush(self.session)

    async def _set_authors(self, post_id: str, author_ids: list[int]) -> None:
        await self._owned_ids(AuthorTable, author_ids)
        await self.session.execute(
            delete(PostAuthorTable).where(PostAuthorTable.post_id == post_id)
        )
        for author_id in dict.fromkeys(author_ids):
            self.session.add(
                PostAuthorTable(blog_id=self.blog_id, post_id=post_id, author_id=author_id)
            )
        await _flush(self.session)


class TaxonomyRepository(Generic[TableT]):
    """Categories, tags or authors of one blog."""

    def __init__(self, session: AsyncSession, table: type[TableT], blog_id: str):
        self.session = session
        self.table = table
        self.blog_id = blog_id

    async def get(self, item_id: Any) -> TableT | None:
        item = await self.session.get(self.table, item_id)
        if item is None or item.blog_id != self.blog_id:
            return None
        return item

    async def create(self, fields: dict[str, Any]) -> TableT:
        item = self.table(blog_id=self.blog_id, **fields)
        self.session.add(item)
        await _flush(self.session)
        return item

    async def update(self, item: TableT, fields: dict[str, Any]) -> TableT:
        for name, value in fields.items():
            setattr(item, name, value)
        await _flush(self.session)
        return item

    async def delete(self, item: TableT) -> None:
        await self.session.delete(item)
        await _flush(self.session)
