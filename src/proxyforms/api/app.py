"""Builds the ProxyForms ASGI app.

One process serves the public content API under the public prefix, the
dashboard write API under /api/blogs, health probes and, when enabled,
Prometheus metrics. Responses are serialized with orjson.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse

from proxyforms.api.errors import register_exception_handlers
from proxyforms.api.middleware import CorrelationMiddleware, PathScopedCORSMiddleware
from proxyforms.api.resources import AppResources
from proxyforms.api.routers import dashboard, health, public
from proxyforms.api.routers import metrics as metrics_router
from proxyforms.config import Settings
from proxyforms.config import settings as default_settings
from proxyforms.observability import configure_logging
from proxyforms.observability.metrics import MetricsMiddleware, get_metrics

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open resources the caller did not inject, and close them on shutdown.

    Shutdown drains pending cache populates and usage events before Redis and
    the database go away.
    """
    settings: Settings = app.state.settings
    configure_logging(json_format=settings.use_json_logs, level=settings.log_level)
    get_metrics()

    logger.info(f"Starting ProxyForms ({settings.env})")
    owned = getattr(app.state, "resources", None) is None
    if owned:
        app.state.resources = AppResources.open(settings)

    yield

    if owned:
        await app.state.resources.close()
    logger.info("ProxyForms shutdown complete")


def create_app(
    settings: Settings | None = None,
    resources: AppResources | None = None,
) -> FastAPI:
    """Create the API app.

    Args:
        settings: Configuration, defaults to the process settings
        resources: Pre-built resources; the caller then owns their lifecycle
    """
    settings = settings or default_settings

    app = FastAPI(
        title="ProxyForms API",
        description="Multi-tenant blogging platform and headless CMS API",
        version="0.1.0",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings
    if resources is not None:
        app.state.resources = resources

    # CorrelationMiddleware is innermost so every other layer sees its context
    app.add_middleware(CorrelationMiddleware)
    if settings.enable_metrics:
        app.add_middleware(MetricsMiddleware)
    app.add_middleware(PathScopedCORSMiddleware, path_prefix=settings.public_api_prefix)

    register_exception_handlers(app)

    app.include_router(health.router)
    if settings.enable_metrics:
        app.include_router(metrics_router.router)

    app.include_router(public.router, prefix=settings.public_api_prefix)
    app.include_router(dashboard.router)

    return app
