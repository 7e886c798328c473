"""Session data models — samples, sessions, and monitor events."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from typing import Any


class MonitorState(enum.Enum):
    """Lifecycle state of a single process monitor."""

    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class MonitorEventType(enum.Enum):
    DATA = "data"
    ERROR = "error"
    STOPPED = "stopped"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class Sample:
    """A single timestamped CPU + memory reading."""

    cpu_percent: float
    memory_bytes: float
    parent_pid: int | None = None
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "cpu": self.cpu_percent,
            "memory": self.memory_bytes,
            "ppid": self.parent_pid,
        }


@dataclass
class Session:
    """One recording run for a single process.

    ``end_time`` and the four aggregates are None until the session is
    finalized. Aggregates stay None for a finalized session without samples.
    """

    id: str
    name: str
    pid: int
    process_name: str
    command: str
    start_time: float
    end_time: float | None = None
    avg_cpu: float | None = None
    max_cpu: float | None = None
    avg_memory: float | None = None
    max_memory: float | None = None
    samples: list[Sample] | None = None

    @property
    def is_finalized(self) -> bool:
        return self.end_time is not None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Session:
        return cls(
            id=row["id"],
            name=row["name"],
            pid=row["pid"],
            process_name=row["process_name"],
            command=row["command"],
            start_time=row["start_time"],
            end_time=row["end_time"],
            avg_cpu=row["avg_cpu"],
            max_cpu=row["max_cpu"],
            avg_memory=row["avg_memory"],
            max_memory=row["max_memory"],
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "pid": self.pid,
            "processName": self.process_name,
            "command": self.command,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "avgCpu": self.avg_cpu,
            "maxCpu": self.max_cpu,
            "avgMemory": self.avg_memory,
            "maxMemory": self.max_memory,
        }
        if self.samples is not None:
            data["dataPoints"] = [s.to_dict() for s in self.samples]
        return data


@dataclass(frozen=True)
class MonitorEvent:
    """Something a Monitor reports to its listener."""

    type: MonitorEventType
    pid: int
    sample: Sample | None = None
    message: str = ""
