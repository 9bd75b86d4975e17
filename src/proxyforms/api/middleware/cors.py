"""CORS for the public content API.

Blog frontends on any domain read the public API straight from the browser,
so it answers every origin for ``GET`` and preflight ``OPTIONS`` and never
allows credentials. Dashboard routes are same-origin and receive no CORS
headers at all.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass

from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send


@dataclass(frozen=True)
class CORSConfig:
    """Keyword arguments for Starlette's ``CORSMiddleware``."""

    allow_origins: tuple[str, ...] = ("*",)
    allow_methods: tuple[str, ...] = ("GET", "OPTIONS")
    allow_headers: tuple[str, ...] = ("Accept", "Content-Type", "X-Request-ID")
    # Lets browser clients report the id when filing issues
    expose_headers: tuple[str, ...] = ("X-Request-ID", "X-Correlation-ID")
    allow_credentials: bool = False
    max_age: int = 600


class PathScopedCORSMiddleware:
    """Runs ``CORSMiddleware`` for requests under ``path_prefix`` only."""

    def __init__(self, app: ASGIApp, path_prefix: str, config: CORSConfig | None = None):
        self.app = app
        self.path_prefix = path_prefix.rstrip("/")
        self.cors = CORSMiddleware(app, **asdict(config or CORSConfig()))

    def applies_to(self, path: str) -> bool:
        return path == self.path_prefix or path.startswith(f"{self.path_prefix}/")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http" and self.applies_to(scope["path"]):
            await self.cors(scope, receive, send)
        else:
            await self.app(scope, receive, send)
