"""Tests for the public content API."""

import json
from types import SimpleNamespace

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update

from proxyforms.api.app import create_app
from proxyforms.api.resources import AppResources
from proxyforms.cache import CacheKeys, CacheStore
from proxyforms.config import Settings
from proxyforms.persistence import Database, PostTable
from proxyforms.tasks import TaskSpawner
from proxyforms.usage import UsageMeter

PREFIX = "/api/public/v1"


def _code(response) -> str:
    return response.json()["messages"][0]["code"]


class TestBlogIdValidation:
    """Test tenant id handling."""

    @pytest.mark.asyncio
    async def test_blank_blog_id(self, client: AsyncClient) -> None:
        """A blank id answers MISSING_BLOG_ID."""
        response = await client.get(f"{PREFIX}/%20/posts")
        assert response.status_code == 400
        assert _code(response) == "MISSING_BLOG_ID"

    @pytest.mark.asyncio
    async def test_empty_blog_id_segment(self, client: AsyncClient) -> None:
        """An empty tenant segment answers MISSING_BLOG_ID rather than a 404."""
        response = await client.get(f"{PREFIX}//posts")
        assert response.status_code == 400
        assert _code(response) == "MISSING_BLOG_ID"

    @pytest.mark.asyncio
    async def test_malformed_blog_id(self, client: AsyncClient) -> None:
        """A non-UUID id answers INVALID_BLOG_ID."""
        response = await client.get(f"{PREFIX}/not-a-uuid/categories")
        assert response.status_code == 400
        assert _code(response) == "INVALID_BLOG_ID"

    @pytest.mark.asyncio
    async def test_unknown_blog_lists_nothing(self, client: AsyncClient) -> None:
        """A well-formed id without content yields empty pages."""
        response = await client.get(f"{PREFIX}/6f1c2b0e-0000-4000-8000-000000000000/tags")
        assert response.status_code == 200
        assert response.json() == {"data": [], "total": 0, "offset": 0, "limit": 30}


class TestListPosts:
    """Test GET /{blog_id}/posts."""

    @pytest.mark.asyncio
    async def test_envelope(self, client: AsyncClient, content: SimpleNamespace) -> None:
        """Lists use the data/total/offset/limit envelope."""
        response = await client.get(f"{PREFIX}/{content.blog_id}/posts", params={"limit": 2})
        body = response.json()
        assert response.status_code == 200
        assert body["total"] == 3
        assert body["offset"] == 0
        assert body["limit"] == 2
        assert [p["slug"] for p in body["data"]] == ["hello-world", "second-post"]
        assert "html_content" not in body["data"][0]

    @pytest.mark.asyncio
    async def test_filters(self, client: AsyncClient, content: SimpleNamespace) -> None:
        """Category, tags and author filters apply."""
        response = await client.get(
            f"{PREFIX}/{content.blog_id}/posts",
            params={"tags": "rust, go", "author": "bob"},
        )
        assert [p["slug"] for p in response.json()["data"]] == ["second-post"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [{"limit": 0}, {"limit": 101}, {"offset": -1}])
    async def test_invalid_pagination(
        self, client: AsyncClient, content: SimpleNamespace, params: dict
    ) -> None:
        """Out of range pagination answers INVALID_QUERY."""
        response = await client.get(f"{PREFIX}/{content.blog_id}/posts", params=params)
        assert response.status_code == 400
        assert _code(response) == "INVALID_QUERY"

    @pytest.mark.asyncio
    async def test_served_from_cache(
        self,
        client: AsyncClient,
        content: SimpleNamespace,
        database: Database,
        resources: AppResources,
    ) -> None:
        """A cached page is returned without reading the database again."""
        url = f"{PREFIX}/{content.blog_id}/posts"
        first = await client.get(url)
        await resources.spawner.drain(timeout=1.0)

        async with database.session() as session:
            await session.execute(
                update(PostTable)
                .where(PostTable.id == content.posts["hello-world"])
                .values(title="Changed behind the cache")
            )

        second = await client.get(url)
        assert second.json() == first.json()
        assert await resources.store.exists(CacheKeys.posts_list(content.blog_id, 0, 30))

    @pytest.mark.asyncio
    async def test_cache_down_still_serves(
        self, client: AsyncClient, content: SimpleNamespace, redis_client
    ) -> None:
        """Redis being unreachable never fails a read."""
        redis_client.down = True
        response = await client.get(f"{PREFIX}/{content.blog_id}/posts")
        assert response.status_code == 200
        assert response.json()["total"] == 3

    @pytest.mark.asyncio
    async def test_tag_named_all_does_not_poison_unfiltered_list(
        self, client: AsyncClient, content: SimpleNamespace, resources: AppResources
    ) -> None:
        """Filtering by a tag literally named "all" is cached apart from the full list."""
        url = f"{PREFIX}/{content.blog_id}/posts"
        filtered = await client.get(url, params={"tags": "all"})
        assert filtered.json()["data"] == []
        await resources.spawner.drain(timeout=1.0)

        unfiltered = await client.get(url)
        assert [p["slug"] for p in unfiltered.json()["data"]] == [
            "hello-world",
            "second-post",
            "third-post",
        ]


class TestGetPost:
    """Test GET /{blog_id}/posts/{slug}."""

    @pytest.mark.asyncio
    async def test_found(self, client: AsyncClient, content: SimpleNamespace) -> None:
        """The post is wrapped in a data envelope."""
        response = await client.get(f"{PREFIX}/{content.blog_id}/posts/hello-world")
        data = response.json()["data"]
        assert data["title"] == "Hello World"
        assert data["html_content"] == "<p>hello-world</p>"
        assert data["category"] == {"name": "Tech", "slug": "tech"}

    @pytest.mark.asyncio
    async def test_not_found_not_cached(
        self, client: AsyncClient, content: SimpleNamespace, resources: AppResources
    ) -> None:
        """A missing post answers NO_POSTS_FOUND and leaves no cache entry."""
        response = await client.get(f"{PREFIX}/{content.blog_id}/posts/draft-post")
        await resources.spawner.drain(timeout=1.0)

        assert response.status_code == 404
        assert _code(response) == "NO_POSTS_FOUND"
        assert not await resources.store.exists(
            CacheKeys.post_by_slug(content.blog_id, "draft-post")
        )

    @pytest.mark.asyncio
    async def test_blank_slug(self, client: AsyncClient, content: SimpleNamespace) -> None:
        """A blank slug answers MISSING_BLOG_ID_OR_SLUG."""
        response = await client.get(f"{PREFIX}/{content.blog_id}/posts/%20")
        assert response.status_code == 400
        assert _code(response) == "MISSING_BLOG_ID_OR_SLUG"


class TestTaxonomy:
    """Test category, tag and author endpoints."""

    @pytest.mark.asyncio
    async def test_categories(self, client: AsyncClient, content: SimpleNamespace) -> None:
        """Categories list name and slug only."""
        response = await client.get(f"{PREFIX}/{content.blog_id}/categories")
        assert response.json()["data"] == [
            {"name": "Tech", "slug": "tech"},
            {"name": "Life", "slug": "life"},
        ]

    @pytest.mark.asyncio
    async def test_tags_paginated(self, client: AsyncClient, content: SimpleNamespace) -> None:
        """Tags honor offset and limit."""
        response = await client.get(
            f"{PREFIX}/{content.blog_id}/tags", params={"offset": 2, "limit": 1}
        )
        body = response.json()
        assert [t["slug"] for t in body["data"]] == ["go"]
        assert body["total"] == 3

    @pytest.mark.asyncio
    async def test_authors(self, client: AsyncClient, content: SimpleNamespace) -> None:
        """Authors list their profiles."""
        response = await client.get(f"{PREFIX}/{content.blog_id}/authors")
        assert [a["slug"] for a in response.json()["data"]] == ["alice", "bob"]

    @pytest.mark.asyncio
    async def test_author_detail(self, client: AsyncClient, content: SimpleNamespace) -> None:
        """Single authors have empty strings for missing fields."""
        response = await client.get(f"{PREFIX}/{content.blog_id}/authors/bob")
        assert response.json()["data"] == {
            "name": "Bob",
            "slug": "bob",
            "image_url": "",
            "twitter": "",
            "website": "",
            "bio": "",
        }

    @pytest.mark.asyncio
    async def test_author_not_found(self, client: AsyncClient, content: SimpleNamespace) -> None:
        """Unknown authors answer AUTHOR_NOT_FOUND."""
        response = await client.get(f"{PREFIX}/{content.blog_id}/authors/nobody")
        assert response.status_code == 404
        assert _code(response) == "AUTHOR_NOT_FOUND"


class TestCors:
    """Test CORS scoping."""

    @pytest.mark.asyncio
    async def test_public_routes_allow_any_origin(
        self, client: AsyncClient, content: SimpleNamespace
    ) -> None:
        """Public responses carry CORS headers."""
        response = await client.get(
            f"{PREFIX}/{content.blog_id}/tags", headers={"Origin": "https://blog.example"}
        )
        assert response.headers["access-control-allow-origin"] == "*"

    @pytest.mark.asyncio
    async def test_preflight(self, client: AsyncClient, content: SimpleNamespace) -> None:
        """Preflight requests for GET succeed."""
        response = await client.options(
            f"{PREFIX}/{content.blog_id}/posts",
            headers={
                "Origin": "https://blog.example",
                "Access-Control-Request-Method": "GET",
            },
        )
        assert response.status_code == 200
        assert "GET" in response.headers["access-control-allow-methods"]

    @pytest.mark.asyncio
    async def test_dashboard_routes_have_no_cors(
        self, client: AsyncClient, content: SimpleNamespace
    ) -> None:
        """Dashboard responses never carry CORS headers."""
        response = await client.get(
            f"/api/blogs/{content.blog_id}",
            headers={"Origin": "https://blog.example", "X-User-ID": "user-a"},
        )
        assert "access-control-allow-origin" not in response.headers

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client: AsyncClient, content: SimpleNamespace) -> None:
        """The request id is propagated to the response."""
        response = await client.get(
            f"{PREFIX}/{content.blog_id}/tags", headers={"X-Request-ID": "req-123"}
        )
        assert response.headers["x-request-id"] == "req-123"


class TestUsageMetering:
    """Test usage events emitted by public reads."""

    @pytest.mark.asyncio
    async def test_event_sent_per_request(
        self,
        settings: Settings,
        database: Database,
        store: CacheStore,
        content: SimpleNamespace,
    ) -> None:
        """Every request is metered, cache hits included."""
        received: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.extend(json.loads(request.content))
            return httpx.Response(202)

        metered = settings.model_copy(
            update={"usage_ingest_url": "https://ingest.example"}
        )
        spawner = TaskSpawner()
        ingest = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        usage = UsageMeter(metered, spawner, http_client=ingest)
        resources = AppResources.build(metered, database, store, usage=usage, spawner=spawner)
        app = create_app(metered, resources)

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            url = f"{PREFIX}/{content.blog_id}/categories"
            await client.get(url)
            await spawner.drain(timeout=1.0)
            await client.get(url)
            await spawner.drain(timeout=1.0)
        await ingest.aclose()

        assert len(received) == 2
        assert received[0]["blogId"] == content.blog_id
        assert received[0]["event"] == "api-usage"
        assert received[0]["path"].endswith(f"/{content.blog_id}/categories")

    @pytest.mark.asyncio
    async def test_invalid_requests_not_metered(
        self, client: AsyncClient, spawner: TaskSpawner
    ) -> None:
        """Requests rejected before resolving a blog produce no event."""
        await client.get(f"{PREFIX}/not-a-uuid/posts")
        assert spawner.pending == 0
