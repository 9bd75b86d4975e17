"""Persistence layer for ProxyForms.

This module provides:
- Async engine and session factory (``Database``)
- SQLAlchemy ORM models for blogs and their content
- Tenant-scoped read queries for the public API
- Repositories for dashboard writes
"""

from proxyforms.persistence.db import Database
from proxyforms.persistence.queries import ContentQueries, PostFilters
from proxyforms.persistence.repositories import (
    BlogRepository,
    DuplicateSlugError,
    InvalidReferenceError,
    PostRepository,
    TaxonomyRepository,
)
from proxyforms.persistence.tables import (
    AuthorTable,
    Base,
    BlogTable,
    CategoryTable,
    PostAuthorTable,
    PostTable,
    PostTagTable,
    TagTable,
)

__all__ = [
    # DB
    "Database",
    # Tables
    "Base",
    "BlogTable",
    "PostTable",
    "CategoryTable",
    "TagTable",
    "AuthorTable",
    "PostTagTable",
    "PostAuthorTable",
    # Reads
    "ContentQueries",
    "PostFilters",
    # Writes
    "BlogRepository",
    "PostRepository",
    "TaxonomyRepository",
    "DuplicateSlugError",
    "InvalidReferenceError",
]
