"""CLI commands for browsing and editing recorded sessions."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import click
from rich.console import Console
from rich.table import Table

from proctrace.cli.format import (
    format_bytes,
    format_duration,
    format_percent,
    format_time,
)
from proctrace.config import ProcTraceConfig
from proctrace.session.models import Session
from proctrace.storage.db import get_db
from proctrace.storage.store import SessionStore

console = Console()

T = TypeVar("T")


def _with_store(
    config: ProcTraceConfig,
    fn: Callable[[SessionStore], Awaitable[T]],
) -> T:
    async def _run() -> T:
        db = await get_db(config.db_path)
        try:
            return await fn(SessionStore(db))
        finally:
            await db.close()

    return asyncio.run(_run())


@click.command()
@click.pass_context
def sessions(ctx: click.Context) -> None:
    """List recorded sessions, newest first."""
    rows = _with_store(ctx.obj["config"], lambda store: store.list_sessions())
    if not rows:
        console.print("[dim]No sessions recorded yet.[/dim]")
        return

    table = Table(show_lines=False)
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("PID", justify="right")
    table.add_column("Started")
    table.add_column("Duration")
    table.add_column("Avg CPU", justify="right")
    table.add_column("Max Mem", justify="right")
    for s in rows:
        table.add_row(
            s.id,
            s.name,
            str(s.pid),
            format_time(s.start_time),
            format_duration(s.start_time, s.end_time),
            format_percent(s.avg_cpu),
            format_bytes(s.max_memory),
        )
    console.print(table)


@click.command()
@click.argument("session_id")
@click.option("--samples", "-s", is_flag=True, help="Print every data point.")
@click.pass_context
def show(ctx: click.Context, session_id: str, samples: bool) -> None:
    """Show one session and its summary statistics."""
    session = _with_store(
        ctx.obj["config"],
        lambda store: store.get_session_with_samples(session_id),
    )
    if session is None:
        console.print(f"[red]Session {session_id} not found[/red]")
        raise SystemExit(1)

    print_session(session)

    if samples and session.samples:
        table = Table(show_lines=False)
        table.add_column("Time")
        table.add_column("CPU", justify="right")
        table.add_column("Memory", justify="right")
        table.add_column("PPID", justify="right", style="dim")
        for sample in session.samples:
            table.add_row(
                format_time(sample.timestamp),
                format_percent(sample.cpu_percent),
                format_bytes(sample.memory_bytes),
                str(sample.parent_pid) if sample.parent_pid is not None else "-",
            )
        console.print(table)


def print_session(session: Session, out: Console | None = None) -> None:
    out = out or console
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="dim")
    table.add_column()

    table.add_row("Session ID", session.id)
    table.add_row("Name", session.name)
    table.add_row("PID", str(session.pid))
    table.add_row("Process", session.process_name)
    table.add_row("Command", session.command)
    table.add_row("Started", format_time(session.start_time))
    table.add_row("Ended", format_time(session.end_time))
    table.add_row("Duration", format_duration(session.start_time, session.end_time))
    if session.samples is not None:
        table.add_row("Samples", str(len(session.samples)))
    table.add_row("Avg CPU", format_percent(session.avg_cpu))
    table.add_row("Max CPU", format_percent(session.max_cpu))
    table.add_row("Avg Memory", format_bytes(session.avg_memory))
    table.add_row("Max Memory", format_bytes(session.max_memory))
    out.print(table)


@click.command()
@click.argument("session_id")
@click.argument("name")
@click.pass_context
def rename(ctx: click.Context, session_id: str, name: str) -> None:
    """Rename a recorded session."""
    if not name.strip():
        raise click.BadParameter("Name is required", param_hint="NAME")
    session = _with_store(
        ctx.obj["config"],
        lambda store: store.rename_session(session_id, name.strip()),
    )
    if session is None:
        console.print(f"[red]Session {session_id} not found[/red]")
        raise SystemExit(1)
    console.print(f"Renamed [dim]{session.id}[/dim] to [bold]{session.name}[/bold]")


@click.command()
@click.argument("session_id")
@click.confirmation_option(prompt="Delete this session and all its samples?")
@click.pass_context
def delete(ctx: click.Context, session_id: str) -> None:
    """Delete a session and all of its samples."""
    deleted = _with_store(
        ctx.obj["config"],
        lambda store: store.delete_session(session_id),
    )
    if not deleted:
        console.print(f"[red]Session {session_id} not found[/red]")
        raise SystemExit(1)
    console.print(f"Deleted session [dim]{session_id}[/dim]")
