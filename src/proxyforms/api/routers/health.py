"""Liveness, readiness and cache probes.

- /health        report for uptime monitors (database and Redis)
- /health/live   process is up; never touches dependencies
- /health/ready  database and Redis reachable, for load balancer rotation
- /health/cache  Redis keyspace size, memory and hit rate

The public API degrades to the database when Redis is down, but readiness
still reports it so operators notice the lost cache.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from proxyforms.api.deps import Resources
from proxyforms.api.resources import AppResources

router = APIRouter(tags=["health"])

# Seconds before a dependency probe counts as failed
CHECK_TIMEOUT = 5.0

Probe = Callable[[], Awaitable[bool]]


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Outcome of probing one dependency."""

    name: str
    status: HealthStatus
    latency_ms: float
    message: str | None = None

    @property
    def healthy(self) -> bool:
        return self.status is HealthStatus.HEALTHY

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            data["message"] = self.message
        return data


async def check_component(name: str, probe: Probe) -> ComponentHealth:
    """Run ``probe`` under ``CHECK_TIMEOUT`` and time it."""
    label = name.capitalize()
    started = time.monotonic()
    try:
        ok = await asyncio.wait_for(probe(), timeout=CHECK_TIMEOUT)
        message = None if ok else f"{label} check failed"
    except asyncio.TimeoutError:
        ok = False
        message = f"{label} check timed out"
    return ComponentHealth(
        name=name,
        status=HealthStatus.HEALTHY if ok else HealthStatus.UNHEALTHY,
        latency_ms=(time.monotonic() - started) * 1000,
        message=message,
    )


async def probe_dependencies(resources: AppResources) -> tuple[HealthStatus, list[ComponentHealth]]:
    """Probe the database and Redis concurrently."""
    components = await asyncio.gather(
        check_component("database", resources.db.health_check),
        check_component("redis", resources.store.health_check),
    )
    overall = (
        HealthStatus.HEALTHY if all(c.healthy for c in components) else HealthStatus.UNHEALTHY
    )
    return overall, list(components)


def _status_code(overall: HealthStatus) -> int:
    return 200 if overall is HealthStatus.HEALTHY else 503


@router.get("/health")
async def full_health(resources: Resources) -> JSONResponse:
    """Per-dependency up/down map; 503 when anything is down."""
    overall, components = await probe_dependencies(resources)
    checks = {}
    for component in components:
        entry = component.to_dict()
        del entry["name"]
        entry["status"] = "up" if component.healthy else "down"
        checks[component.name] = entry
    return JSONResponse(
        {"status": overall.value, "checks": checks}, status_code=_status_code(overall)
    )


@router.get("/health/live")
async def live() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health/ready")
async def ready(resources: Resources) -> JSONResponse:
    """Component list; 503 until both dependencies answer."""
    overall, components = await probe_dependencies(resources)
    return JSONResponse(
        {"status": overall.value, "components": [c.to_dict() for c in components]},
        status_code=_status_code(overall),
    )


@router.get("/health/cache")
async def cache_health(resources: Resources) -> JSONResponse:
    """Redis statistics, or 503 when it cannot be reached."""
    store = resources.store
    if not await store.health_check():
        return JSONResponse(
            {"status": "unhealthy", "error": "Redis connection failed"}, status_code=503
        )
    stats = await store.stats()
    return JSONResponse({"status": "healthy", "stats": stats.to_dict()})
