"""Command line interface for Collybrix.

Usage:
    collybrix serve --port 8000
    collybrix --config collybrix.toml db init
    collybrix db seed
    collybrix db fix-task-status

The root callback loads the configuration and sets up logging once; the
resulting CLIContext travels to every command on ``typer.Context.obj``.
"""

from __future__ import annotations

from functools import cached_property
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from collybrix import __version__
from collybrix.cli import db as db_cli
from collybrix.config import CollybrixConfig, load_config
from collybrix.database.connection import get_engine, get_session_factory
from collybrix.logging import setup_logging

app = typer.Typer(
    name="collybrix",
    help="Agency admin tool: projects, estimations and project management",
    no_args_is_help=True,
)
app.add_typer(db_cli.app, name="db")

console = Console()


class CLIContext:
    """Configuration plus a lazily created database engine.

    The engine is only built when a command touches the database, so
    ``serve`` never opens a second pool next to the web app's own.
    """

    def __init__(self, config: CollybrixConfig) -> None:
        self.config = config

    @cached_property
    def engine(self) -> AsyncEngine:
        return get_engine(self.config.database)

    @cached_property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return get_session_factory(self.engine)


def _print_version(value: bool) -> None:
    if value:
        console.print(f"collybrix {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="TOML configuration file (default: ./collybrix.toml)",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log at DEBUG level"),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_print_version,
            is_eager=True,
            help="Show the version and exit",
        ),
    ] = False,
) -> None:
    """Collybrix command line."""
    try:
        config = load_config(config_path)
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(code=1) from e

    if verbose:
        config.logging = config.logging.model_copy(update={"level": "DEBUG"})
    setup_logging(config.logging)

    ctx.obj = CLIContext(config)


@app.command()
def serve(
    ctx: typer.Context,
    host: Annotated[
        Optional[str],
        typer.Option("--host", "-h", help="Bind address (default from config)"),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", "-p", help="Bind port (default from config)"),
    ] = None,
) -> None:
    """Run the JSON API and dashboard under uvicorn."""
    import uvicorn

    from collybrix.web.app import create_app

    config: CollybrixConfig = ctx.obj.config
    bind_host = host or config.web.host
    bind_port = port or config.web.port

    console.print(f"[bold cyan]Collybrix[/bold cyan] listening on http://{bind_host}:{bind_port}")
    uvicorn.run(
        create_app(config),
        host=bind_host,
        port=bind_port,
        log_level=config.logging.level.lower(),
    )


if __name__ == "__main__":
    app()
