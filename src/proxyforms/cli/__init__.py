"""``proxyforms`` command line.

    proxyforms serve                      run the API
    proxyforms db init                    create tables
    proxyforms cache stats|flush          inspect or clear the cache namespace
    proxyforms cache invalidate-blog ID   evict one blog's entries
"""

import typer

from proxyforms.cli.cache_cmd import app as cache_app
from proxyforms.cli.db_cmd import app as db_app
from proxyforms.cli.serve import app as serve_app

app = typer.Typer(
    name="proxyforms",
    help="Multi-tenant blogging platform and headless CMS API",
    no_args_is_help=True,
)
app.add_typer(serve_app, name="serve")
app.add_typer(db_app, name="db")
app.add_typer(cache_app, name="cache")


@app.callback()
def callback() -> None:
    """Multi-tenant blogging platform and headless CMS API."""
    pass


def main() -> None:
    app()


if __name__ == "__main__":
    main()
