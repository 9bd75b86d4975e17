"""Dashboard write API.

Content management endpoints used by the ProxyForms dashboard. The caller is
authenticated upstream; its user id arrives in the ``X-User-ID`` header.
Every write is followed by the matching cache invalidation once the
transaction has committed.
"""

from __future__ import annotations

from fastapi import APIRouter

from proxyforms.api.routers.dashboard.blogs import router as blogs_router
from proxyforms.api.routers.dashboard.posts import router as posts_router
from proxyforms.api.routers.dashboard.taxonomy import router as taxonomy_router

router = APIRouter(prefix="/api")

# Mount all sub-routers
router.include_router(blogs_router)
router.include_router(posts_router)
router.include_router(taxonomy_router)

__all__ = ["router"]
