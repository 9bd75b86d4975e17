"""API routers for ProxyForms."""

from proxyforms.api.routers import dashboard, health, metrics, public

__all__ = [
    "dashboard",
    "health",
    "metrics",
    "public",
]
