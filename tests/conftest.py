"""Shared test fixtures and fakes for the process collaborators."""

from __future__ import annotations

from pathlib import Path

import pytest

from proctrace.errors import SamplingError
from proctrace.process.models import ProcessDescriptor, ResourceUsage


class FakeLookup:
    """ProcessLookup backed by a dict."""

    def __init__(self, *processes: ProcessDescriptor) -> None:
        self.processes = {p.pid: p for p in processes}

    def find(self, pid: int) -> ProcessDescriptor | None:
        return self.processes.get(pid)


class FakeSource:
    """SampleSource that replays a script per PID.

    Script items are ResourceUsage readings or exceptions to raise. Once a
    script runs out every further call raises SamplingError, so tests get
    an exact number of data points.
    """

    def __init__(self, scripts: dict[int, list] | None = None) -> None:
        self.scripts = {pid: list(items) for pid, items in (scripts or {}).items()}
        self.calls: list[int] = []
        self.primed: list[int] = []
        self.forgotten: list[int] = []

    def prime(self, pid: int) -> None:
        self.primed.append(pid)

    def forget(self, pid: int) -> None:
        self.forgotten.append(pid)

    def sample(self, pid: int) -> ResourceUsage:
        self.calls.append(pid)
        script = self.scripts.get(pid)
        if not script:
            raise SamplingError(f"no reading scripted for PID {pid}")
        item = script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


def usage(cpu: float, memory: float, ppid: int | None = 1) -> ResourceUsage:
    return ResourceUsage(cpu_percent=cpu, memory_bytes=memory, parent_pid=ppid)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
def sleeper() -> ProcessDescriptor:
    return ProcessDescriptor(pid=1234, name="sleeper", command="sleeper --forever")


@pytest.fixture
def lookup(sleeper: ProcessDescriptor) -> FakeLookup:
    return FakeLookup(sleeper)
