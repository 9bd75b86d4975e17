from __future__ import annotations

from typing import Any

import orjson
from fastapi import Response


def json_response(payload: Any, status_code: int | None = None) -> Response:
    """Serialize an already JSON-compatible payload (cached or fresh) with orjson."""
    content = orjson.dumps(payload)
    if status_code is None:
        return Response(content=content, media_type="application/json")
    return Response(content=content, media_type="application/json", status_code=status_code)
