"""CLI commands for inspecting and clearing the cache.

Usage:
    proxyforms cache stats
    proxyforms cache flush --yes
    proxyforms cache invalidate-blog 0b7c1f9e-...
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import typer

from proxyforms.api.deps import validate_blog_id
from proxyforms.api.errors import BadRequestError
from proxyforms.cache import CacheInvalidator, CacheStats, CacheStore, create_redis_client
from proxyforms.config import settings
from proxyforms.observability.logging import LogContext

T = TypeVar("T")

app = typer.Typer(help="Inspect and clear the Redis cache", no_args_is_help=True)


def _run(action: Callable[[CacheStore], Awaitable[T]]) -> T:
    async def runner() -> T:
        store = CacheStore(create_redis_client(settings), prefix=settings.cache_prefix)
        try:
            return await action(store)
        finally:
            await store.close()

    return asyncio.run(runner())


@app.command("stats")
def stats() -> None:
    """Show keyspace size, memory use and hit rate."""
    from rich.console import Console
    from rich.table import Table

    console = Console()

    async def collect(store: CacheStore) -> CacheStats | None:
        if not await store.health_check():
            return None
        return await store.stats()

    result = _run(collect)
    if result is None:
        console.print("[red]Redis connection failed[/red]")
        raise typer.Exit(code=1)

    table = Table(title="Cache statistics")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    for name, value in result.to_dict().items():
        table.add_row(name, str(value))
    console.print(table)


@app.command("flush")
def flush(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete every key in the ProxyForms namespace."""
    if not yes:
        typer.confirm(f"Delete all keys under '{settings.cache_prefix}'?", abort=True)
    if not _run(lambda store: store.flush()):
        typer.echo("Cache flush failed", err=True)
        raise typer.Exit(code=1)
    typer.echo("Cache flushed")


@app.command("invalidate-blog")
def invalidate_blog(
    blog_id: str = typer.Argument(..., help="Blog (tenant) id"),
) -> None:
    """Evict every cached entry of one blog."""
    # Keys hold the canonical lower-case UUID
    try:
        blog_id = validate_blog_id(blog_id)
    except BadRequestError as e:
        typer.echo(e.text, err=True)
        raise typer.Exit(code=2)

    with LogContext(blog_id=blog_id):
        deleted = _run(lambda store: CacheInvalidator(store).invalidate_blog(blog_id))
    typer.echo(f"Invalidated {deleted} keys for blog {blog_id}")
