"""Prometheus metrics for ProxyForms.

Three families are tracked:
- HTTP traffic per normalized route (count, latency, in flight)
- Cache-aside outcomes per resource, plus store failures that were absorbed
- Usage meter delivery outcomes

With ``PROXYFORMS_ENABLE_METRICS=false`` every collector is a ``NoOpMetric``,
so call sites never branch on the toggle.

Usage:
    from proxyforms.observability.metrics import get_metrics

    get_metrics().cache_hits_total.labels(resource="posts").inc()
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from prometheus_client import REGISTRY, Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from proxyforms.config import settings

if TYPE_CHECKING:
    from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

_UUID_SEGMENT = re.compile(r"^[0-9a-fA-F-]{32,36}$")

# Segments after which a UUID names a blog rather than a record inside it
_BLOG_SCOPES = frozenset({"v1", "blogs"})
# Public collections addressed by slug
_SLUG_COLLECTIONS = frozenset({"posts", "authors"})

# Probes and scrapes would drown out real traffic
_UNMETERED_PREFIXES = ("/health", "/metrics")

_LATENCY_BUCKETS = (0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5)


class NoOpMetric:
    """Stand-in accepting the collector calls used in this package."""

    def labels(self, **labels: Any) -> "NoOpMetric":
        return self

    def inc(self, amount: float = 1) -> None:
        pass

    def dec(self, amount: float = 1) -> None:
        pass

    def observe(self, value: float) -> None:
        pass


@dataclass
class MetricsRegistry:
    """Process-wide collectors, real or no-op depending on settings."""

    http_requests_total: Any = field(default_factory=NoOpMetric)
    http_request_duration_seconds: Any = field(default_factory=NoOpMetric)
    http_requests_in_progress: Any = field(default_factory=NoOpMetric)

    cache_hits_total: Any = field(default_factory=NoOpMetric)
    cache_misses_total: Any = field(default_factory=NoOpMetric)
    cache_errors_total: Any = field(default_factory=NoOpMetric)

    usage_events_total: Any = field(default_factory=NoOpMetric)

    _initialized: bool = field(default=False, repr=False)
    _enabled: bool = field(default=False, repr=False)

    def initialize(self) -> None:
        """Register the collectors with the default registry, at most once."""
        if self._initialized:
            return
        self._initialized = True

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            return

        self.http_requests_total = Counter(
            "proxyforms_http_requests_total",
            "HTTP requests by normalized route and status",
            ["method", "path", "status"],
        )
        self.http_request_duration_seconds = Histogram(
            "proxyforms_http_request_duration_seconds",
            "HTTP request latency in seconds",
            ["method", "path"],
            buckets=_LATENCY_BUCKETS,
        )
        self.http_requests_in_progress = Gauge(
            "proxyforms_http_requests_in_progress",
            "HTTP requests being handled",
            ["method"],
        )

        self.cache_hits_total = Counter(
            "proxyforms_cache_hits_total", "Public reads served from Redis", ["resource"]
        )
        self.cache_misses_total = Counter(
            "proxyforms_cache_misses_total", "Public reads served from the database", ["resource"]
        )
        self.cache_errors_total = Counter(
            "proxyforms_cache_errors_total",
            "Cache store operations that failed and were absorbed",
            ["operation"],
        )

        self.usage_events_total = Counter(
            "proxyforms_usage_events_total",
            "Usage events by delivery outcome",
            ["outcome"],
        )

        self._enabled = True
        logger.info("Prometheus metrics registered")

    def generate_latest(self) -> bytes:
        """Exposition text for a scrape."""
        if not self._enabled:
            return b"# Metrics disabled\n"
        return generate_latest(REGISTRY)


metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """The process registry, registering collectors on first use."""
    metrics_registry.initialize()
    return metrics_registry


def normalize_path(path: str) -> str:
    """Replace blog ids, record ids and slugs with placeholders.

    Keeps the ``path`` label bounded no matter how many tenants exist:
        /api/public/v1/<uuid>/posts/hello-world -> /api/public/v1/{blog_id}/posts/{slug}
        /api/blogs/<uuid>/categories/7 -> /api/blogs/{blog_id}/categories/{id}
    """
    parts = path.strip("/").split("/")
    public = "v1" in parts
    out: list[str] = []
    previous = ""
    for part in parts:
        if _UUID_SEGMENT.match(part):
            out.append("{blog_id}" if previous in _BLOG_SCOPES else "{id}")
        elif public and previous in _SLUG_COLLECTIONS:
            out.append("{slug}")
        elif part.isdigit():
            out.append("{id}")
        else:
            out.append(part)
        previous = part
    return "/" + "/".join(out) if out else path


class MetricsMiddleware(BaseHTTPMiddleware):
    """Counts and times every API request except probes and scrapes."""

    def __init__(self, app: "ASGIApp") -> None:
        super().__init__(app)
        self.metrics = get_metrics()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path.startswith(_UNMETERED_PREFIXES):
            return await call_next(request)

        method = request.method
        route = normalize_path(request.url.path)
        in_progress = self.metrics.http_requests_in_progress.labels(method=method)

        in_progress.inc()
        started = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            self.metrics.http_request_duration_seconds.labels(method=method, path=route).observe(
                time.perf_counter() - started
            )
            self.metrics.http_requests_total.labels(method=method, path=route, status=status).inc()
            in_progress.dec()
