"""Structured error responses for ProxyForms.

Every error body has the same shape:

    {"messages": [{"code": ..., "messageType": ..., "text": ..., "timestamp": ...}]}

``code`` is a stable machine-readable identifier (``NO_POSTS_FOUND``,
``MISSING_BLOG_ID``...) that API clients switch on.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum
from typing import cast

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel, Field
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ExceptionHandler

from proxyforms.persistence.repositories import DuplicateSlugError, InvalidReferenceError

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    """Type of message in error response."""

    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"
    EXCEPTION = "Exception"


class Message(BaseModel):
    """Error message."""

    model_config = {"extra": "forbid", "populate_by_name": True}

    code: str
    message_type: MessageType = Field(alias="messageType")
    text: str
    timestamp: str | None = None


class Result(BaseModel):
    """Result wrapper for errors."""

    model_config = {"extra": "forbid"}

    messages: list[Message]


def _result(code: str, text: str, message_type: MessageType = MessageType.ERROR) -> Result:
    return Result(
        messages=[
            Message(
                code=code,
                messageType=message_type,
                text=text,
                timestamp=datetime.now(UTC).isoformat(),
            )
        ]
    )


class ApiError(HTTPException):
    """Base exception for API errors."""

    def __init__(
        self,
        status_code: int,
        code: str,
        text: str,
        message_type: MessageType = MessageType.ERROR,
    ):
        self.code = code
        self.text = text
        self.message_type = message_type
        super().__init__(status_code=status_code, detail=text)

    def to_result(self) -> Result:
        """Convert to the error body format."""
        return _result(self.code, self.text, self.message_type)


class BadRequestError(ApiError):
    """Invalid request (400)."""

    def __init__(self, text: str, code: str = "BAD_REQUEST"):
        super().__init__(status_code=400, code=code, text=text)


class MissingBlogIdError(BadRequestError):
    def __init__(self) -> None:
        super().__init__("Blog ID is required", code="MISSING_BLOG_ID")


class MissingBlogIdOrSlugError(BadRequestError):
    def __init__(self) -> None:
        super().__init__("Blog ID and slug are required", code="MISSING_BLOG_ID_OR_SLUG")


class InvalidBlogIdError(BadRequestError):
    def __init__(self, blog_id: str):
        super().__init__(f"Invalid blog ID: '{blog_id}'", code="INVALID_BLOG_ID")


class InvalidQueryError(BadRequestError):
    def __init__(self, text: str):
        super().__init__(text, code="INVALID_QUERY")


class UnauthorizedError(ApiError):
    """Missing authenticated user (401)."""

    def __init__(self) -> None:
        super().__init__(status_code=401, code="UNAUTHORIZED", text="Authentication required")


class NotFoundError(ApiError):
    """Resource not found (404)."""

    def __init__(self, text: str, code: str = "NOT_FOUND"):
        super().__init__(status_code=404, code=code, text=text)


class PostNotFoundError(NotFoundError):
    def __init__(self, slug: str):
        super().__init__(f"No post found with slug '{slug}'", code="NO_POSTS_FOUND")


class AuthorNotFoundError(NotFoundError):
    def __init__(self, slug: str):
        super().__init__(f"No author found with slug '{slug}'", code="AUTHOR_NOT_FOUND")


class ConflictError(ApiError):
    """Unique constraint violated (409)."""

    def __init__(self, text: str = "Slug already exists for this blog"):
        super().__init__(status_code=409, code="DUPLICATE_SLUG", text=text)


class InternalServerError(ApiError):
    """Internal server error (500)."""

    def __init__(self, text: str = "An unexpected error occurred"):
        super().__init__(
            status_code=500,
            code="INTERNAL_SERVER_ERROR",
            text=text,
            message_type=MessageType.EXCEPTION,
        )


async def api_exception_handler(request: Request, exc: ApiError) -> ORJSONResponse:
    """Exception handler for API errors."""
    return ORJSONResponse(
        status_code=exc.status_code,
        content=exc.to_result().model_dump(by_alias=True),
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> ORJSONResponse:
    """Framework-raised HTTP errors (unknown routes, wrong methods)."""
    code = "NOT_FOUND" if exc.status_code == 404 else "BAD_REQUEST"
    if exc.status_code == 405:
        code = "METHOD_NOT_ALLOWED"
    return ORJSONResponse(
        status_code=exc.status_code,
        content=_result(code, str(exc.detail)).model_dump(by_alias=True),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> ORJSONResponse:
    """Query, path and body validation failures become INVALID_QUERY."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    error = InvalidQueryError("; ".join(parts) or "Invalid request")
    return await api_exception_handler(request, error)


async def duplicate_slug_handler(request: Request, exc: DuplicateSlugError) -> ORJSONResponse:
    return await api_exception_handler(request, ConflictError(str(exc)))


async def invalid_reference_handler(
    request: Request, exc: InvalidReferenceError
) -> ORJSONResponse:
    return await api_exception_handler(request, BadRequestError(str(exc)))


async def generic_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    """Exception handler for unexpected errors, relational failures included."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return ORJSONResponse(
        status_code=500,
        content=InternalServerError().to_result().model_dump(by_alias=True),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install every handler on ``app``."""
    app.add_exception_handler(ApiError, cast(ExceptionHandler, api_exception_handler))
    app.add_exception_handler(
        StarletteHTTPException, cast(ExceptionHandler, http_exception_handler)
    )
    app.add_exception_handler(
        RequestValidationError, cast(ExceptionHandler, validation_exception_handler)
    )
    app.add_exception_handler(DuplicateSlugError, cast(ExceptionHandler, duplicate_slug_handler))
    app.add_exception_handler(
        InvalidReferenceError, cast(ExceptionHandler, invalid_reference_handler)
    )
    app.add_exception_handler(Exception, cast(ExceptionHandler, generic_exception_handler))
