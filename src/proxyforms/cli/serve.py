"""Run the API under uvicorn.

Usage:
    proxyforms serve
    proxyforms serve --port 8080 --reload
"""

from __future__ import annotations

import typer
from rich.console import Console

from proxyforms.config import settings

app = typer.Typer(help="Run the ProxyForms API server")

# ``create_app`` builds settings-bound resources, so uvicorn calls it per worker
APP_FACTORY = "proxyforms.api.app:create_app"


@app.callback(invoke_without_command=True)
def serve(
    host: str = typer.Option(settings.host, "--host", "-h", help="Interface to bind"),
    port: int = typer.Option(settings.port, "--port", "-p", help="Port to listen on"),
    workers: int = typer.Option(1, "--workers", "-w", help="Worker processes"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),
    access_log: bool = typer.Option(
        False,
        "--access-log/--no-access-log",
        help="uvicorn access lines (request logs already carry request ids)",
    ),
) -> None:
    """Serve the public and dashboard APIs."""
    import uvicorn

    if reload and workers > 1:
        typer.echo("--reload runs a single worker; ignoring --workers", err=True)
        workers = 1

    console = Console(stderr=True)
    console.print(f"[bold]ProxyForms[/bold] ({settings.env}) on http://{host}:{port}")
    console.print(f"  public API  {settings.public_api_prefix}/{{blog_id}}/...")
    console.print(f"  cache keys  {settings.cache_prefix}*")
    console.print(f"  workers     {workers}")

    uvicorn.run(
        APP_FACTORY,
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=workers,
        log_level=settings.log_level.lower(),
        access_log=access_log,
    )
