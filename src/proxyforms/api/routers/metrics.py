"""Prometheus scrape endpoint.

Mounted only when metrics are enabled; it carries no authentication and is
expected to be reachable from the internal network only.
"""

from __future__ import annotations

from fastapi import APIRouter
from starlette.responses import Response

from proxyforms.observability.metrics import get_metrics

EXPOSITION_MEDIA_TYPE = "text/plain; version=0.0.4; charset=utf-8"

router = APIRouter(tags=["observability"])


@router.get(
    "/metrics",
    response_class=Response,
    summary="Prometheus scrape target",
    responses={200: {"content": {EXPOSITION_MEDIA_TYPE: {}}}},
)
async def scrape() -> Response:
    return Response(get_metrics().generate_latest(), media_type=EXPOSITION_MEDIA_TYPE)
