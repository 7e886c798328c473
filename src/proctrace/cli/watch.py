"""CLI command: proctrace watch <PID> — record a running process."""

from __future__ import annotations

import asyncio
import signal

import click
from rich.console import Console

from proctrace.cli.format import format_bytes, format_percent
from proctrace.cli.sessions import print_session
from proctrace.config import ProcTraceConfig
from proctrace.errors import ProcessNotFound
from proctrace.process.psutil_ import PsutilLookup, PsutilSampleSource
from proctrace.session.broadcast import Broadcaster
from proctrace.session.models import Session
from proctrace.session.registry import MonitorRegistry
from proctrace.storage.db import get_db
from proctrace.storage.store import SessionStore

console = Console(stderr=True)


@click.command()
@click.argument("pid", type=int)
@click.option("--name", "-n", default=None, help="Session name.")
@click.option(
    "--interval",
    "-i",
    type=float,
    default=None,
    help="Seconds between samples (default: 0.5).",
)
@click.pass_context
def watch(
    ctx: click.Context,
    pid: int,
    name: str | None,
    interval: float | None,
) -> None:
    """Record CPU and memory usage of a running process."""
    config: ProcTraceConfig = ctx.obj["config"]
    if interval is not None:
        config.poll_interval = interval

    try:
        session = asyncio.run(_record(config, pid, name))
    except ProcessNotFound as exc:
        console.print(f"[red]{exc}[/red]")
        raise SystemExit(1)

    if session is not None:
        console.print("\n[bold]Session Summary[/bold]")
        print_session(session, out=console)


async def _record(
    config: ProcTraceConfig,
    pid: int,
    name: str | None,
) -> Session | None:
    db = await get_db(config.db_path)
    try:
        store = SessionStore(db)
        broadcaster = Broadcaster(queue_size=config.subscriber_queue_size)
        registry = MonitorRegistry(
            store,
            broadcaster,
            PsutilLookup(),
            PsutilSampleSource(),
            poll_interval=config.poll_interval,
        )
        sub = broadcaster.subscribe()

        session = await registry.handle_start(pid, name)
        console.print(
            f"[bold]ProcTrace[/bold] recording PID {pid} "
            f"([cyan]{session.process_name}[/cyan]) as "
            f"[bold]{session.name}[/bold]"
        )
        console.print("  Press Ctrl+C to stop.\n")

        loop = asyncio.get_running_loop()
        pending: list[asyncio.Task] = []

        def _on_signal() -> None:
            console.print("\n[dim]Stopping...[/dim]")
            pending.append(loop.create_task(registry.handle_stop(pid)))

        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, _on_signal)

        try:
            async for message in sub:
                kind = message["type"]
                payload = message["payload"]
                if kind == "datapoint":
                    console.print(
                        f"  cpu [green]{format_percent(payload['cpu']):>7}[/green]  "
                        f"mem [blue]{format_bytes(payload['memory']):>10}[/blue]"
                    )
                elif kind == "error":
                    console.print(f"  [yellow]⚠ {payload['message']}[/yellow]")
                elif kind == "stopped":
                    if payload["reason"] == "terminated":
                        console.print(f"\n[yellow]Process {pid} exited[/yellow]")
                    break
        finally:
            for signum in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(signum)
            sub.close()
            await registry.stop_all()
            if pending:
                await asyncio.gather(*pending)

        return await store.get_session_with_samples(session.id)
    finally:
        await db.close()
