"""Cache key schema for ProxyForms.

Key format: {resource}:{blog_id}:{param1}:{param2}:...

Where:
- resource: "posts", "post", "categories", "tags", "authors", "author", "blog"
- blog_id: tenant identifier (every content key is tenant-scoped)
- params: normalized request parameters, "all" for an absent optional filter

Filter values are percent-encoded, so a value can never contain the ":" and
"," separators or glob characters, and a literal "all" is spelled "%61ll" to
stay distinct from the sentinel. Two different filter combinations therefore
never share a key.

The namespace prefix ("proxyforms:") is added by ``CacheStore``, so keys built
here are logical keys. Invalidation relies on this layout: every list key of a
resource for a tenant matches ``{resource}:{blog_id}:*``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Literal
from urllib.parse import quote

Resource = Literal["posts", "post", "categories", "tags", "authors", "author", "blog"]

# Sentinel for an optional filter that was not supplied
ALL = "all"


def normalize_tags(tags: Iterable[str] | str | None) -> list[str]:
    """Normalize a tag filter into a sorted, de-duplicated list of slugs.

    Accepts either the raw comma-separated query value or an iterable of
    slugs. Blank entries are dropped. Tag filtering has OR semantics, so
    order and repetition carry no meaning.
    """
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    return sorted({tag.strip() for tag in tags if tag and tag.strip()})


class CacheKeys:
    """Cache key generator following consistent naming convention."""

    @staticmethod
    def _encode(value: str) -> str:
        encoded = quote(value, safe="")
        # quote() never escapes letters, so "%61" cannot come from a real value
        return "%61ll" if encoded == ALL else encoded

    @classmethod
    def _part(cls, value: str | None) -> str:
        if value is None or value == "":
            return ALL
        return cls._encode(value)

    @classmethod
    def posts_list(
        cls,
        blog_id: str,
        offset: int,
        limit: int,
        category: str | None = None,
        tags: Iterable[str] | None = None,
        author: str | None = None,
    ) -> str:
        """Key for a page of published posts with its filter combination."""
        tag_part = ",".join(cls._encode(tag) for tag in normalize_tags(tags)) or ALL
        return (
            f"posts:{blog_id}:{offset}:{limit}:"
            f"{cls._part(category)}:{tag_part}:{cls._part(author)}"
        )

    @classmethod
    def post_by_slug(cls, blog_id: str, slug: str) -> str:
        """Key for a single published post addressed by slug."""
        return f"post:{blog_id}:slug:{slug}"

    @classmethod
    def post_by_id(cls, blog_id: str, post_id: str) -> str:
        """Key for a single post addressed by id."""
        return f"post:{blog_id}:id:{post_id}"

    @classmethod
    def categories_list(cls, blog_id: str, offset: int, limit: int) -> str:
        """Key for a page of categories."""
        return f"categories:{blog_id}:{offset}:{limit}"

    @classmethod
    def tags_list(cls, blog_id: str, offset: int, limit: int) -> str:
        """Key for a page of tags."""
        return f"tags:{blog_id}:{offset}:{limit}"

    @classmethod
    def authors_list(cls, blog_id: str, offset: int, limit: int) -> str:
        """Key for a page of authors."""
        return f"authors:{blog_id}:{offset}:{limit}"

    @classmethod
    def author_by_slug(cls, blog_id: str, slug: str) -> str:
        """Key for a single author addressed by slug."""
        return f"author:{blog_id}:slug:{slug}"

    @classmethod
    def blog(cls, blog_id: str) -> str:
        """Key for the blog (tenant) record."""
        return f"blog:{blog_id}"

    @classmethod
    def pattern(cls, resource: Resource, blog_id: str) -> str:
        """Glob matching every key of ``resource`` for a tenant.

        Use with ``CacheStore.delete_pattern``.
        """
        return f"{resource}:{blog_id}:*"

    @classmethod
    def parse_key(cls, key: str) -> dict[str, str] | None:
        """Parse a logical cache key into resource, tenant and parameters.

        Returns None if the key doesn't match the expected format.
        """
        parts = key.split(":")
        if len(parts) < 2 or parts[0] not in (
            "posts",
            "post",
            "categories",
            "tags",
            "authors",
            "author",
            "blog",
        ):
            return None

        return {
            "resource": parts[0],
            "blog_id": parts[1],
            "params": ":".join(parts[2:]),
        }
