"""Global pytest configuration and fixtures.

Unit tests run without external services:
- Redis is replaced by ``InMemoryRedis``, covering the subset of the
  redis-py asyncio API that ``CacheStore`` uses
- The relational store is SQLite in memory through aiosqlite
- HTTP tests drive the app through httpx's ASGI transport
"""

from __future__ import annotations

import fnmatch
import time
from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.pool import StaticPool

from proxyforms.api.app import create_app
from proxyforms.api.resources import AppResources
from proxyforms.cache import CacheStore
from proxyforms.config import Settings
from proxyforms.persistence import (
    AuthorTable,
    BlogTable,
    CategoryTable,
    Database,
    PostAuthorTable,
    PostTable,
    PostTagTable,
    TagTable,
)
from proxyforms.tasks import TaskSpawner
from proxyforms.usage import UsageMeter

BASE_TIME = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)


def _text(value: str | bytes) -> str:
    return value.decode() if isinstance(value, bytes) else value


class InMemoryRedis:
    """In-process stand-in for ``redis.asyncio.Redis`` in unit tests.

    Set ``down = True`` to make every command fail like an unreachable
    server.
    """

    def __init__(self) -> None:
        self.values: dict[str, Any] = {}
        self.expires: dict[str, float] = {}
        self.down = False
        self.hits = 0
        self.misses = 0
        self.closed = False

    def _check(self) -> None:
        if self.down:
            raise RedisConnectionError("Connection refused")

    def _alive(self, key: str) -> bool:
        deadline = self.expires.get(key)
        if deadline is not None and deadline <= time.monotonic():
            self.values.pop(key, None)
            self.expires.pop(key, None)
        return key in self.values

    async def get(self, key: str) -> bytes | None:
        self._check()
        if self._alive(key):
            self.hits += 1
            return self.values[key]  # type: ignore[no-any-return]
        self.misses += 1
        return None

    async def set(self, key: str, value: bytes, ex: int | None = None) -> bool:
        self._check()
        self.values[key] = value
        if ex is not None:
            self.expires[key] = time.monotonic() + ex
        else:
            self.expires.pop(key, None)
        return True

    async def delete(self, *keys: str | bytes) -> int:
        self._check()
        deleted = 0
        for raw in keys:
            key = _text(raw)
            if self._alive(key):
                del self.values[key]
                self.expires.pop(key, None)
                deleted += 1
        return deleted

    async def scan_iter(self, match: str | None = None, count: int | None = None):  # type: ignore[no-untyped-def]
        self._check()
        for key in list(self.values):
            if self._alive(key) and (match is None or fnmatch.fnmatchcase(key, match)):
                yield key.encode()

    async def exists(self, *keys: str) -> int:
        self._check()
        return sum(1 for key in keys if self._alive(key))

    async def ttl(self, key: str) -> int:
        self._check()
        if not self._alive(key):
            return -2
        deadline = self.expires.get(key)
        if deadline is None:
            return -1
        return int(round(deadline - time.monotonic()))

    async def incrby(self, key: str, amount: int = 1) -> int:
        self._check()
        current = int(self.values.get(key, b"0")) if self._alive(key) else 0
        current += amount
        self.values[key] = str(current).encode()
        return current

    async def decrby(self, key: str, amount: int = 1) -> int:
        return await self.incrby(key, -amount)

    async def sadd(self, key: str, *members: str) -> int:
        self._check()
        current = self.values.setdefault(key, set())
        before = len(current)
        current.update(m.encode() for m in members)
        return len(current) - before

    async def smembers(self, key: str) -> set[bytes]:
        self._check()
        return set(self.values.get(key, set())) if self._alive(key) else set()

    async def sismember(self, key: str, member: str) -> int:
        self._check()
        return int(self._alive(key) and member.encode() in self.values[key])

    async def dbsize(self) -> int:
        self._check()
        return sum(1 for key in list(self.values) if self._alive(key))

    async def info(self, section: str | None = None) -> dict[str, Any]:
        self._check()
        if section == "memory":
            return {"used_memory_human": "1.00M"}
        return {"keyspace_hits": self.hits, "keyspace_misses": self.misses}

    async def ping(self) -> bool:
        self._check()
        return True

    async def aclose(self) -> None:
        self.closed = True


# =============================================================================
# Infrastructure fixtures
# =============================================================================


@pytest.fixture
def redis_client() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def store(redis_client: InMemoryRedis) -> CacheStore:
    return CacheStore(redis_client, prefix="proxyforms:")  # type: ignore[arg-type]


@pytest.fixture
def spawner() -> TaskSpawner:
    return TaskSpawner()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        env="test",
        database_url="sqlite+aiosqlite://",
        usage_ingest_url=None,
        enable_metrics=False,
        json_logs=False,
    )


@pytest_asyncio.fixture
async def database() -> AsyncIterator[Database]:
    db = Database(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await db.create_all()
    yield db
    await db.close()


@pytest.fixture
def resources(
    settings: Settings, database: Database, store: CacheStore, spawner: TaskSpawner
) -> AppResources:
    return AppResources.build(
        settings,
        database,
        store,
        usage=UsageMeter(settings, spawner),
        spawner=spawner,
    )


@pytest_asyncio.fixture
async def client(settings: Settings, resources: AppResources) -> AsyncIterator[AsyncClient]:
    app = create_app(settings, resources)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
    await resources.spawner.drain(timeout=1.0)


# =============================================================================
# Content fixtures
# =============================================================================


@pytest_asyncio.fixture
async def content(database: Database) -> SimpleNamespace:
    """Two blogs with posts, taxonomy and associations.

    Blog A:
        hello-world   published  t-0  category tech  tags python, rust  author alice
        second-post   published  t-1  category life  tags go            author bob
        third-post    published  t-2  no category    tags python        authors alice, bob
        draft-post    unpublished
        removed-post  published but soft-deleted
    Blog B:
        hello-world   published  (same slug as in blog A)
    """
    async with database.session() as session:
        blog = BlogTable(user_id="user-a", title="Blog A")
        other = BlogTable(user_id="user-b", title="Blog B")
        session.add_all([blog, other])
        await session.flush()

        tech = CategoryTable(blog_id=blog.id, name="Tech", slug="tech")
        life = CategoryTable(blog_id=blog.id, name="Life", slug="life")
        python = TagTable(blog_id=blog.id, name="Python", slug="python", created_at=BASE_TIME)
        rust = TagTable(
            blog_id=blog.id, name="Rust", slug="rust", created_at=BASE_TIME + timedelta(seconds=1)
        )
        go = TagTable(
            blog_id=blog.id, name="Go", slug="go", created_at=BASE_TIME + timedelta(seconds=2)
        )
        alice = AuthorTable(
            blog_id=blog.id,
            name="Alice",
            slug="alice",
            image_url="https://img.example/alice.png",
            twitter="alice",
        )
        bob = AuthorTable(blog_id=blog.id, name="Bob", slug="bob")
        session.add_all([tech, life, python, rust, go, alice, bob])
        await session.flush()

        def post(slug: str, hours_ago: int, **fields: Any) -> PostTable:
            fields.setdefault("blog_id", blog.id)
            fields.setdefault("published", True)
            fields.setdefault("title", slug.replace("-", " ").title())
            return PostTable(
                user_id="user-a",
                slug=slug,
                excerpt=f"Excerpt of {slug}",
                html_content=f"<p>{slug}</p>",
                published_at=BASE_TIME - timedelta(hours=hours_ago),
                **fields,
            )

        first = post("hello-world", 0, category_id=tech.id)
        second = post("second-post", 1, category_id=life.id)
        third = post("third-post", 2)
        draft = post("draft-post", 3, published=False)
        removed = post("removed-post", 4, deleted=True)
        foreign = post("hello-world", 0, blog_id=other.id, title="Other Blog Post")
        session.add_all([first, second, third, draft, removed, foreign])
        await session.flush()

        links: list[Any] = [
            PostTagTable(blog_id=blog.id, post_id=first.id, tag_id=python.id),
            PostTagTable(blog_id=blog.id, post_id=first.id, tag_id=rust.id),
            PostTagTable(blog_id=blog.id, post_id=second.id, tag_id=go.id),
            PostTagTable(blog_id=blog.id, post_id=third.id, tag_id=python.id),
            PostAuthorTable(blog_id=blog.id, post_id=first.id, author_id=alice.id),
            PostAuthorTable(blog_id=blog.id, post_id=second.id, author_id=bob.id),
            PostAuthorTable(blog_id=blog.id, post_id=third.id, author_id=bob.id),
            PostAuthorTable(blog_id=blog.id, post_id=third.id, author_id=alice.id),
        ]
        session.add_all(links)

        return SimpleNamespace(
            blog_id=blog.id,
            other_blog_id=other.id,
            owner="user-a",
            categories={"tech": tech.id, "life": life.id},
            tags={"python": python.id, "rust": rust.id, "go": go.id},
            authors={"alice": alice.id, "bob": bob.id},
            posts={
                "hello-world": first.id,
                "second-post": second.id,
                "third-post": third.id,
                "draft-post": draft.id,
                "removed-post": removed.id,
            },
        )
