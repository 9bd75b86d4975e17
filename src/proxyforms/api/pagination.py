"""Offset pagination for the public API.

Lists take independent ``offset`` and ``limit`` query parameters. Out of range
values fail request validation and are answered with ``INVALID_QUERY``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Query

DEFAULT_LIMIT = 30
MAX_LIMIT = 100

OffsetParam = Annotated[
    int,
    Query(ge=0, description="Number of items to skip"),
]

LimitParam = Annotated[
    int,
    Query(ge=1, le=MAX_LIMIT, description=f"Maximum number of items to return (1-{MAX_LIMIT})"),
]
