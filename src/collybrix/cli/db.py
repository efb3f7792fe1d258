"""``collybrix db`` commands: schema creation, demo data and status repair.

Each command runs one coroutine against the engine held by the CLI
context and disposes the engine afterwards.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.panel import Panel
from sqlalchemy.ext.asyncio import AsyncSession

from collybrix.database.connection import create_schema
from collybrix.database.maintenance import fix_task_statuses
from collybrix.database.seed import ALREADY_SEEDED, seed_projects

app = typer.Typer(help="Database commands", no_args_is_help=True)
console = Console()

T = TypeVar("T")


def _run_in_session(
    ctx: typer.Context,
    work: Callable[[AsyncSession], Awaitable[T]],
    failure: str,
) -> T:
    """Run ``work`` in a fresh session, exiting with code 1 on any error."""
    cli = ctx.obj

    async def _run() -> T:
        try:
            async with cli.session_factory() as session:
                return await work(session)
        finally:
            await cli.engine.dispose()

    try:
        return asyncio.run(_run())
    except Exception as e:
        console.print(f"[red]{failure}:[/red] {e}")
        raise typer.Exit(code=1) from e


@app.command()
def init(ctx: typer.Context) -> None:
    """Create every table that does not exist yet."""

    async def _create(session: AsyncSession) -> None:
        await create_schema(ctx.obj.engine)

    _run_in_session(ctx, _create, "Error creating schema")
    console.print("[green]Database schema created[/green]")


@app.command()
def seed(ctx: typer.Context) -> None:
    """Load the demo projects into an empty database."""
    result: dict[str, Any] = _run_in_session(ctx, seed_projects, "Error seeding database")

    if result["message"] == ALREADY_SEEDED:
        console.print(f"[yellow]{ALREADY_SEEDED}[/yellow] ({result['count']} projects)")
        return

    console.print(
        Panel(
            "\n".join(result["insertedIds"]),
            title=result["message"],
            border_style="green",
        )
    )


@app.command("fix-task-status")
def fix_task_status(ctx: typer.Context) -> None:
    """Reset tasks whose status is not a known value to backlog."""
    fixed = _run_in_session(ctx, fix_task_statuses, "Error fixing task statuses")

    if fixed:
        console.print(f"[green]Fixed {fixed} task(s)[/green]")
    else:
        console.print("All task statuses are valid")
