"""CLI commands for the relational store.

Usage:
    proxyforms db init
"""

from __future__ import annotations

import asyncio

import typer

from proxyforms.config import settings
from proxyforms.persistence import Database

app = typer.Typer(help="Manage the database schema", no_args_is_help=True)


async def _init() -> None:
    db = Database.from_settings(settings)
    try:
        await db.create_all()
    finally:
        await db.close()


@app.command("init")
def init() -> None:
    """Create all tables that do not exist yet."""
    from rich.console import Console

    console = Console()
    asyncio.run(_init())
    console.print("[green]Database tables created[/green]")
