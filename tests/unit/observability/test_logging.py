"""Tests for structured logging."""

import json
import logging
import sys

from proxyforms.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    blog_id_var,
    request_id_var,
)


def _record(message: str = "Cache miss", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="proxyforms.cache.aside",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    """Test JSON output."""

    def test_basic_fields(self) -> None:
        """Records render as one JSON object."""
        data = json.loads(JsonFormatter().format(_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "proxyforms.cache.aside"
        assert data["message"] == "Cache miss"
        assert "blog_id" not in data

    def test_context_included(self) -> None:
        """Request and tenant context are attached."""
        with LogContext(request_id="req-1", blog_id="blog-1"):
            data = json.loads(JsonFormatter().format(_record()))
        assert data["request_id"] == "req-1"
        assert data["blog_id"] == "blog-1"

    def test_extra_fields(self) -> None:
        """Fields passed through ``extra`` are kept."""
        data = json.loads(JsonFormatter().format(_record(resource="posts")))
        assert data["resource"] == "posts"

    def test_exception(self) -> None:
        """Exceptions are serialized with their traceback."""
        try:
            raise ValueError("bad payload")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()
        data = json.loads(JsonFormatter().format(record))
        assert data["exception"]["type"] == "ValueError"
        assert "bad payload" in data["exception"]["traceback"]


class TestConsoleFormatter:
    """Test human-readable output."""

    def test_context_suffix(self) -> None:
        """Short request and blog ids follow the message."""
        with LogContext(request_id="abcdef123456", blog_id="0b7c1f9e-4a2d"):
            line = ConsoleFormatter(use_colors=False).format(_record())
        assert "| proxyforms.cache.aside | Cache miss" in line
        assert line.endswith("req=abcdef12 blog=0b7c1f9e")


class TestLogContext:
    """Test temporary context."""

    def test_restores_previous_values(self) -> None:
        """Leaving the block restores the outer context."""
        token = blog_id_var.set("outer")
        try:
            with LogContext(blog_id="inner"):
                assert blog_id_var.get() == "inner"
            assert blog_id_var.get() == "outer"
        finally:
            blog_id_var.reset(token)

    def test_unknown_names_ignored(self) -> None:
        """Names without a context variable are skipped."""
        with LogContext(session="x"):
            assert request_id_var.get() == ""
