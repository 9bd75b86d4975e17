"""Middleware for ProxyForms API.

Provides:
- Correlation context for request tracing
- CORS scoped to the public content API prefix
"""

from proxyforms.api.middleware.correlation import CorrelationMiddleware
from proxyforms.api.middleware.cors import CORSConfig, PathScopedCORSMiddleware

__all__ = [
    "CORSConfig",
    "CorrelationMiddleware",
    "PathScopedCORSMiddleware",
]
