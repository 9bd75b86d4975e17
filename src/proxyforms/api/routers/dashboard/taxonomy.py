"""Dashboard category, tag and author endpoints.

Each write evicts the blog's cached list pages for that resource. Post
caches keep the embedded names until they expire.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Response, status

from proxyforms.api.deps import OwnedBlogId, Resources
from proxyforms.api.errors import NotFoundError
from proxyforms.persistence import AuthorTable, CategoryTable, TagTable, TaxonomyRepository
from proxyforms.schemas import (
    AuthorCreate,
    AuthorOut,
    AuthorUpdate,
    CategoryCreate,
    CategoryOut,
    CategoryUpdate,
    TagCreate,
    TagOut,
    TagUpdate,
)

router = APIRouter(prefix="/blogs/{blog_id}")


# -------------------------------------------------------------------------
# Categories
# -------------------------------------------------------------------------


@router.post(
    "/categories", status_code=status.HTTP_201_CREATED, tags=["Dashboard - Categories"]
)
async def create_category(
    blog_id: OwnedBlogId, body: CategoryCreate, resources: Resources
) -> CategoryOut:
    async with resources.db.session() as session:
        repo = TaxonomyRepository(session, CategoryTable, blog_id)
        created = CategoryOut.model_validate(await repo.create(body.model_dump()))
    await resources.invalidator.invalidate_categories(blog_id)
    return created


@router.put("/categories/{category_id}", tags=["Dashboard - Categories"])
async def update_category(
    blog_id: OwnedBlogId, category_id: int, body: CategoryUpdate, resources: Resources
) -> CategoryOut:
    async with resources.db.session() as session:
        repo = TaxonomyRepository(session, CategoryTable, blog_id)
        category = await repo.get(category_id)
        if category is None:
            raise NotFoundError(f"Category {category_id} not found")
        updated = CategoryOut.model_validate(
            await repo.update(category, body.model_dump(exclude_unset=True))
        )
    await resources.invalidator.invalidate_categories(blog_id)
    return updated


@router.delete(
    "/categories/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Dashboard - Categories"],
)
async def delete_category(blog_id: OwnedBlogId, category_id: int, resources: Resources) -> Response:
    async with resources.db.session() as session:
        repo = TaxonomyRepository(session, CategoryTable, blog_id)
        category = await repo.get(category_id)
        if category is None:
            raise NotFoundError(f"Category {category_id} not found")
        await repo.delete(category)
    await resources.invalidator.invalidate_categories(blog_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -------------------------------------------------------------------------
# Tags
# -------------------------------------------------------------------------


@router.post("/tags", status_code=status.HTTP_201_CREATED, tags=["Dashboard - Tags"])
async def create_tag(blog_id: OwnedBlogId, body: TagCreate, resources: Resources) -> TagOut:
    async with resources.db.session() as session:
        repo = TaxonomyRepository(session, TagTable, blog_id)
        created = TagOut.model_validate(await repo.create(body.model_dump()))
    await resources.invalidator.invalidate_tags(blog_id)
    return created


@router.put("/tags/{tag_id}", tags=["Dashboard - Tags"])
async def update_tag(
    blog_id: OwnedBlogId, tag_id: UUID, body: TagUpdate, resources: Resources
) -> TagOut:
    async with resources.db.session() as session:
        repo = TaxonomyRepository(session, TagTable, blog_id)
        tag = await repo.get(str(tag_id))
        if tag is None:
            raise NotFoundError(f"Tag {tag_id} not found")
        updated = TagOut.model_validate(
            await repo.update(tag, body.model_dump(exclude_unset=True))
        )
    await resources.invalidator.invalidate_tags(blog_id)
    return updated


@router.delete(
    "/tags/{tag_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["Dashboard - Tags"]
)
async def delete_tag(blog_id: OwnedBlogId, tag_id: UUID, resources: Resources) -> Response:
    async with resources.db.session() as session:
        repo = TaxonomyRepository(session, TagTable, blog_id)
        tag = await repo.get(str(tag_id))
        if tag is None:
            raise NotFoundError(f"Tag {tag_id} not found")
        await repo.delete(tag)
    await resources.invalidator.invalidate_tags(blog_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# -------------------------------------------------------------------------
# Authors
# -------------------------------------------------------------------------


@router.post("/authors", status_code=status.HTTP_201_CREATED, tags=["Dashboard - Authors"])
async def create_author(
    blog_id: OwnedBlogId, body: AuthorCreate, resources: Resources
) -> AuthorOut:
    async with resources.db.session() as session:
        repo = TaxonomyRepository(session, AuthorTable, blog_id)
        created = AuthorOut.model_validate(await repo.create(body.model_dump()))
    await resources.invalidator.invalidate_authors(blog_id, created.slug)
    return created


@router.put("/authors/{author_id}", tags=["Dashboard - Authors"])
async def update_author(
    blog_id: OwnedBlogId, author_id: int, body: AuthorUpdate, resources: Resources
) -> AuthorOut:
    async with resources.db.session() as session:
        repo = TaxonomyRepository(session, AuthorTable, blog_id)
        author = await repo.get(author_id)
        if author is None:
            raise NotFoundError(f"Author {author_id} not found")
        old_slug = author.slug
        updated = AuthorOut.model_validate(
            await repo.update(author, body.model_dump(exclude_unset=True))
        )
    await resources.invalidator.invalidate_authors(blog_id, old_slug, updated.slug)
    return updated


@router.delete(
    "/authors/{author_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Dashboard - Authors"],
)
async def delete_author(blog_id: OwnedBlogId, author_id: int, resources: Resources) -> Response:
    async with resources.db.session() as session:
        repo = TaxonomyRepository(session, AuthorTable, blog_id)
        author = await repo.get(author_id)
        if author is None:
            raise NotFoundError(f"Author {author_id} not found")
        slug = author.slug
        await repo.delete(author)
    await resources.invalidator.invalidate_authors(blog_id, slug)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
