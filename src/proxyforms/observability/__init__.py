"""Logging context and Prometheus collectors shared by the API, cache and usage meter."""

from proxyforms.observability.logging import (
    LogContext,
    blog_id_var,
    configure_logging,
    correlation_id_var,
    current_context,
    request_id_var,
    user_id_var,
)
from proxyforms.observability.metrics import MetricsMiddleware, get_metrics, normalize_path

__all__ = [
    "LogContext",
    "MetricsMiddleware",
    "blog_id_var",
    "configure_logging",
    "correlation_id_var",
    "current_context",
    "get_metrics",
    "normalize_path",
    "request_id_var",
    "user_id_var",
]
