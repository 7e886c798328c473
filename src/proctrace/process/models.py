"""Process descriptors and raw resource readings."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ProcessDescriptor:
    """Read-only identity of an OS process."""

    pid: int
    name: str
    command: str

    def to_dict(self) -> dict:
        return {"pid": self.pid, "name": self.name, "cmd": self.command}


@dataclass(frozen=True)
class ResourceUsage:
    """One raw CPU/memory reading for a PID, as returned by a SampleSource."""

    cpu_percent: float
    memory_bytes: float
    parent_pid: int | None = None
