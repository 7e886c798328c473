"""CLI command: proctrace server — start the web API."""

from __future__ import annotations

import click
from rich.console import Console

console = Console(stderr=True)


@click.command()
@click.option(
    "--port",
    type=int,
    default=None,
    help="Port to listen on (default: 3001).",
)
@click.pass_context
def server(ctx: click.Context, port: int | None) -> None:
    """Start the ProcTrace HTTP + WebSocket server."""
    try:
        import uvicorn
    except ImportError:
        console.print(
            "[red]Web dependencies not installed.[/red]\n"
            "Install with: pip install proctrace[web]"
        )
        raise SystemExit(1)

    from proctrace.web.app import create_app

    config = ctx.obj["config"]
    if port is not None:
        config.web_port = port

    console.print(
        f"[bold]ProcTrace[/bold] server starting on "
        f"[cyan]http://{config.web_host}:{config.web_port}[/cyan]"
    )
    console.print(
        f"  WebSocket: [cyan]ws://{config.web_host}:{config.web_port}/api/ws[/cyan]"
    )
    console.print(f"  Database:  [dim]{config.db_path}[/dim]\n")

    uvicorn.run(
        create_app(config),
        host=config.web_host,
        port=config.web_port,
        log_level="debug" if config.verbose else "info",
    )
