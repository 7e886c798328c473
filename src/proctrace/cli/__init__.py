"""CLI entry point — Click group with global options."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from proctrace import __version__
from proctrace.config import ProcTraceConfig


@click.group()
@click.version_option(version=__version__, prog_name="proctrace")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding the session database.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
def main(ctx: click.Context, data_dir: Path | None, verbose: bool) -> None:
    """ProcTrace — record and replay CPU and memory usage of a process."""
    config = ProcTraceConfig.load()
    if data_dir is not None:
        config.data_dir = data_dir
    config.verbose = verbose

    ctx.ensure_object(dict)
    ctx.obj["config"] = config

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _register_commands() -> None:
    from proctrace.cli.ps import ps  # noqa: F811
    from proctrace.cli.server import server  # noqa: F811
    from proctrace.cli.sessions import delete, rename, sessions, show  # noqa: F811
    from proctrace.cli.watch import watch  # noqa: F811

    main.add_command(watch)
    main.add_command(ps)
    main.add_command(sessions)
    main.add_command(show)
    main.add_command(rename)
    main.add_command(delete)
    main.add_command(server)


_register_commands()
