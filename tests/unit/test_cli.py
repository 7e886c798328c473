"""Tests for CLI commands using Click's CliRunner."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from click.testing import CliRunner
from rich.console import Console

from proctrace.cli import main
from proctrace.session.models import Sample
from proctrace.storage.db import get_db
from proctrace.storage.store import SessionStore


def _seed(data_dir: Path) -> str:
    """Create one finalized session with two samples; return its id."""

    async def _run() -> str:
        db = await get_db(data_dir / "sessions.db")
        try:
            store = SessionStore(db)
            session = await store.create_session("nightly", 1234, "sleeper", "sleeper")
            for i, cpu in enumerate((10.0, 30.0)):
                await store.append_sample(
                    session.id,
                    Sample(cpu_percent=cpu, memory_bytes=2048.0, timestamp=1000.0 + i),
                )
            await store.finalize_session(session.id)
            return session.id
        finally:
            await db.close()

    return asyncio.run(_run())


@pytest.fixture(autouse=True)
def wide_console(monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep table cells from wrapping in captured output
    monkeypatch.setattr("proctrace.cli.sessions.console", Console(width=200))


def test_main_help():
    runner = CliRunner()
    result = runner.invoke(main, ["--help"])
    assert result.exit_code == 0
    assert "ProcTrace" in result.output
    assert "watch" in result.output
    assert "sessions" in result.output


def test_main_version():
    runner = CliRunner()
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_watch_help():
    runner = CliRunner()
    result = runner.invoke(main, ["watch", "--help"])
    assert result.exit_code == 0
    assert "PID" in result.output


def test_watch_unknown_pid_fails(tmp_path: Path):
    runner = CliRunner()
    # PIDs are capped well below this on every supported platform
    result = runner.invoke(main, ["--data-dir", str(tmp_path), "watch", "999999999"])
    assert result.exit_code == 1


def test_sessions_empty(tmp_path: Path):
    runner = CliRunner()
    result = runner.invoke(main, ["--data-dir", str(tmp_path), "sessions"])
    assert result.exit_code == 0
    assert "No sessions" in result.output


def test_sessions_lists_and_shows(tmp_path: Path):
    session_id = _seed(tmp_path)
    runner = CliRunner()

    listed = runner.invoke(main, ["--data-dir", str(tmp_path), "sessions"])
    assert listed.exit_code == 0
    assert "nightly" in listed.output

    shown = runner.invoke(main, ["--data-dir", str(tmp_path), "show", session_id])
    assert shown.exit_code == 0
    assert "20.0%" in shown.output
    assert "30.0%" in shown.output


def test_show_missing(tmp_path: Path):
    runner = CliRunner()
    result = runner.invoke(main, ["--data-dir", str(tmp_path), "show", "nope"])
    assert result.exit_code == 1


def test_rename_and_delete(tmp_path: Path):
    session_id = _seed(tmp_path)
    runner = CliRunner()

    renamed = runner.invoke(
        main, ["--data-dir", str(tmp_path), "rename", session_id, "weekly"]
    )
    assert renamed.exit_code == 0
    assert "weekly" in renamed.output

    deleted = runner.invoke(
        main, ["--data-dir", str(tmp_path), "delete", session_id, "--yes"]
    )
    assert deleted.exit_code == 0

    again = runner.invoke(
        main, ["--data-dir", str(tmp_path), "delete", session_id, "--yes"]
    )
    assert again.exit_code == 1
