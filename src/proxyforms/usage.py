"""API usage metering.

Every public API request with a resolvable blog id produces one usage event.
Events are shipped to the dataset ingest endpoint of an Axiom-compatible
analytics API in a detached task, so metering never delays or fails the
response it describes.

When no ingest URL is configured the event is only logged at debug level.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from proxyforms.observability.metrics import get_metrics

if TYPE_CHECKING:
    from proxyforms.config import Settings
    from proxyforms.tasks import TaskSpawner

logger = logging.getLogger(__name__)

USAGE_EVENT = "api-usage"


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def ingest_endpoint(base_url: str | None, dataset: str) -> str | None:
    """Axiom-style ingest URL for ``dataset`` under the configured API base."""
    if not base_url:
        return None
    return f"{base_url.rstrip('/')}/v1/datasets/{quote(dataset, safe='')}/ingest"


@dataclass
class UsageEvent:
    """A single metered API request."""

    blogId: str
    path: str
    event: str = USAGE_EVENT
    timestamp: str = field(default_factory=_utcnow_iso)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class UsageMeter:
    """Records usage events through a background sender."""

    def __init__(
        self,
        settings: Settings,
        spawner: TaskSpawner,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.ingest_url = ingest_endpoint(settings.usage_ingest_url, settings.usage_dataset)
        self.token = settings.usage_ingest_token
        self.spawner = spawner
        self._owns_client = http_client is None and bool(self.ingest_url)
        self.http_client = http_client
        if self._owns_client:
            self.http_client = httpx.AsyncClient(timeout=settings.usage_timeout)

    @property
    def enabled(self) -> bool:
        """Whether events are shipped anywhere besides the log."""
        return bool(self.ingest_url) and self.http_client is not None

    def record(self, blog_id: str, path: str) -> asyncio.Task[None]:
        """Schedule delivery of a usage event and return immediately."""
        event = UsageEvent(blogId=blog_id, path=path)
        return self.spawner.spawn(self._send(event), name="usage-event")

    async def _send(self, event: UsageEvent) -> None:
        metrics = get_metrics()

        if not self.enabled:
            logger.debug(f"Usage event for blog {event.blogId}: {event.path}")
            metrics.usage_events_total.labels(outcome="skipped").inc()
            return

        assert self.http_client is not None
        assert self.ingest_url is not None
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = await self.http_client.post(
                self.ingest_url,
                json=[event.to_dict()],
                headers=headers,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            metrics.usage_events_total.labels(outcome="failed").inc()
            logger.warning(f"Failed to send usage event for blog {event.blogId}: {e}")
            return

        metrics.usage_events_total.labels(outcome="sent").inc()

    async def close(self) -> None:
        """Close the HTTP client if this meter created it."""
        if self._owns_client and self.http_client is not None:
            await self.http_client.aclose()
