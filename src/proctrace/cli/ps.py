"""CLI command: proctrace ps [FILTER] — list processes that can be recorded."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from proctrace.process.psutil_ import list_processes

console = Console()


@click.command()
@click.argument("filter", required=False)
def ps(filter: str | None) -> None:
    """List running processes, optionally filtered by name or command."""
    processes = list_processes(filter)
    if not processes:
        console.print("[dim]No matching processes.[/dim]")
        return

    table = Table(show_lines=False)
    table.add_column("PID", justify="right", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Command", max_width=80)
    for proc in processes:
        table.add_row(str(proc.pid), proc.name, proc.command)
    console.print(table)
