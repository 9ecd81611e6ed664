"""
Shared helpers for tokenlock CLI commands.

Commands operate on a deployment stored in a JSON state file. Each command
loads the state, runs one operation and writes the state back.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, Callable, NoReturn

import click
from rich.console import Console
from rich.table import Table

from tokenlock.core.exceptions import get_error_context
from tokenlock.core.state import Deployment, load_deployment, save_deployment

logger = logging.getLogger(__name__)
console = Console()
error_console = Console(stderr=True)


def handle_cli_error(exc: Exception, exit_code: int = 1) -> NoReturn:
    """Centralized CLI error handler for consistent messaging/exit codes."""
    logger.error("CLI error: %s", exc, extra={"event": "cli.error", **get_error_context(exc)})
    error_console.print(f"[bold red]Error:[/] {exc}")
    sys.exit(exit_code)


def time_provider(ctx: click.Context) -> Callable[[], int] | None:
    """Fixed clock when --now was given, wall clock otherwise."""
    now = ctx.obj.get("now")
    if now is None:
        return None
    return lambda: now


def load(ctx: click.Context) -> Deployment:
    return load_deployment(ctx.obj["state_file"], time_provider=time_provider(ctx))


def save(ctx: click.Context, deployment: Deployment) -> None:
    save_deployment(ctx.obj["state_file"], deployment)


def emit(ctx: click.Context, payload: dict[str, Any], title: str) -> None:
    """Print a result as JSON (--json-output) or as a two-column table."""
    if ctx.obj.get("json_output"):
        click.echo(json.dumps(payload, indent=2, default=str))
        return

    table = Table(title=title, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", overflow="fold")
    for key, value in payload.items():
        table.add_row(key, "-" if value is None else str(value))
    console.print(table)


def emit_rows(ctx: click.Context, rows: list[dict[str, Any]], title: str) -> None:
    """Print a list of records as JSON or as a table with one row per record."""
    if ctx.obj.get("json_output"):
        click.echo(json.dumps(rows, indent=2, default=str))
        return

    if not rows:
        console.print(f"[yellow]No {title.lower()}[/]")
        return

    table = Table(title=title)
    columns = list(rows[0].keys())
    for column in columns:
        table.add_column(column, overflow="fold")
    for row in rows:
        table.add_row(*("-" if row[c] is None else str(row[c]) for c in columns))
    console.print(table)
