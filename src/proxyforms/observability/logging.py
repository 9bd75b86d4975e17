"""Structured logging for ProxyForms.

Two output formats share one context source:
- JSON lines for log aggregation (Axiom, Loki...) outside development
- A compact console line for local development

Request, correlation, tenant (blog) and user ids live in context variables
bound by ``CorrelationMiddleware`` and the API dependencies. Every record
written while a request runs carries them, background tasks included, since
tasks copy the context they were spawned in.

Usage:
    from proxyforms.observability.logging import configure_logging

    configure_logging(json_format=True, level="INFO")

    logger = logging.getLogger(__name__)
    logger.info("Cache miss")  # Includes request_id, blog_id, ...
"""

from __future__ import annotations

import contextvars
import logging
import sys
from datetime import datetime, timezone
from typing import Any

import orjson

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)
blog_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("blog_id", default="")
user_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("user_id", default="")

_CONTEXT_VARS: dict[str, contextvars.ContextVar[str]] = {
    "request_id": request_id_var,
    "correlation_id": correlation_id_var,
    "blog_id": blog_id_var,
    "user_id": user_id_var,
}

# Attributes of a bare LogRecord; anything else arrived through ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}

# Third-party loggers that are too chatty at INFO
_QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
}


def current_context() -> dict[str, str]:
    """Non-empty correlation and tenant ids bound to the running context."""
    return {name: value for name, var in _CONTEXT_VARS.items() if (value := var.get())}


class JsonFormatter(logging.Formatter):
    """One JSON object per record.

    {"timestamp": "2026-01-10T12:34:56.789+00:00", "level": "INFO",
     "logger": "proxyforms.cache.aside", "message": "...", "module": "aside",
     "function": "get_or_set", "line": 42, "request_id": "...", "blog_id": "..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        entry.update(current_context())

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and not key.startswith("_"):
                entry[key] = value

        return orjson.dumps(entry, default=str).decode()


class ConsoleFormatter(logging.Formatter):
    """Single-line development format.

    2026-01-10 12:34:56 | INFO     | proxyforms.cache.aside | Cache miss | req=abc12345 blog=0b7c1f9e
    """

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    # Context shown on console lines, with the short label used for each
    SHORT_CONTEXT = (("request_id", "req"), ("blog_id", "blog"), ("user_id", "user"))

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        when = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        level = f"{record.levelname:8}"
        if self.use_colors:
            level = f"{self.LEVEL_COLORS.get(record.levelname, '')}{level}{self.RESET}"

        line = f"{when} | {level} | {record.name} | {record.getMessage()}"

        context = current_context()
        short = [
            f"{label}={context[name][:8]}"
            for name, label in self.SHORT_CONTEXT
            if name in context
        ]
        if short:
            line += " | " + " ".join(short)

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(
    json_format: bool = True,
    level: str = "INFO",
    use_colors: bool = True,
) -> None:
    """Install a single stderr handler on the root logger.

    Args:
        json_format: JSON lines instead of the console format
        level: Root log level name
        use_colors: ANSI colors in the console format (ignored without a TTY)
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if json_format else ConsoleFormatter(use_colors))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())

    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)


class LogContext:
    """Temporarily bind context ids outside a request.

    Usage (for example in CLI commands):
        with LogContext(blog_id=blog_id):
            logger.info("Invalidating blog")
    """

    def __init__(self, **ids: str) -> None:
        self.ids = {name: value for name, value in ids.items() if name in _CONTEXT_VARS}
        self._tokens: list[tuple[contextvars.ContextVar[str], contextvars.Token[str]]] = []

    def __enter__(self) -> "LogContext":
        for name, value in self.ids.items():
            var = _CONTEXT_VARS[name]
            self._tokens.append((var, var.set(value)))
        return self

    def __exit__(self, *args: Any) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)
