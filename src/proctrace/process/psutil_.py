"""psutil-backed process lookup and resource sampling."""

from __future__ import annotations

import logging
import threading

import psutil

from proctrace.errors import ProcessNotFound, SamplingError
from proctrace.process.models import ProcessDescriptor, ResourceUsage

logger = logging.getLogger(__name__)


def _describe(proc: psutil.Process) -> ProcessDescriptor:
    name = proc.name()
    try:
        cmdline = proc.cmdline()
    except (psutil.AccessDenied, psutil.ZombieProcess):
        cmdline = []
    return ProcessDescriptor(
        pid=proc.pid,
        name=name,
        command=" ".join(cmdline) or name,
    )


class PsutilLookup:
    """ProcessLookup over psutil."""

    def find(self, pid: int) -> ProcessDescriptor | None:
        try:
            return _describe(psutil.Process(pid))
        except psutil.NoSuchProcess:
            return None
        except psutil.AccessDenied:
            # Process exists but details are hidden from us
            return ProcessDescriptor(pid=pid, name=str(pid), command=str(pid))


def list_processes(filter: str | None = None) -> list[ProcessDescriptor]:
    """Return visible processes sorted by name, optionally substring-filtered."""
    result: list[ProcessDescriptor] = []
    for proc in psutil.process_iter():
        try:
            desc = _describe(proc)
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
        result.append(desc)

    if filter:
        term = filter.lower()
        result = [
            p
            for p in result
            if term in p.name.lower() or term in p.command.lower()
        ]

    return sorted(result, key=lambda p: p.name.lower())


class PsutilSampleSource:
    """SampleSource over psutil.

    Keeps one psutil.Process per PID so that cpu_percent() measures the
    interval between consecutive samples rather than returning 0.0 each time.
    """

    def __init__(self) -> None:
        self._procs: dict[int, psutil.Process] = {}
        self._lock = threading.Lock()

    def _process(self, pid: int) -> psutil.Process:
        with self._lock:
            proc = self._procs.get(pid)
            if proc is None:
                proc = psutil.Process(pid)
                # Prime the CPU counter; the first reading is meaningless
                proc.cpu_percent(interval=None)
                self._procs[pid] = proc
            return proc

    def prime(self, pid: int) -> None:
        # A fresh handle, so a restarted monitor does not inherit old counters
        self.forget(pid)
        try:
            self._process(pid)
        except psutil.NoSuchProcess as exc:
            raise ProcessNotFound(pid) from exc
        except psutil.Error as exc:
            raise SamplingError(f"Failed to sample PID {pid}: {exc}") from exc

    def forget(self, pid: int) -> None:
        with self._lock:
            self._procs.pop(pid, None)

    def sample(self, pid: int) -> ResourceUsage:
        try:
            proc = self._process(pid)
            if not proc.is_running():
                raise psutil.NoSuchProcess(pid)
            with proc.oneshot():
                cpu = proc.cpu_percent(interval=None)
                memory = proc.memory_info().rss
                ppid = proc.ppid()
        except psutil.NoSuchProcess as exc:
            # ZombieProcess is a NoSuchProcess too: the target has exited
            self.forget(pid)
            raise ProcessNotFound(pid) from exc
        except psutil.Error as exc:
            raise SamplingError(f"Failed to sample PID {pid}: {exc}") from exc

        return ResourceUsage(
            cpu_percent=float(cpu),
            memory_bytes=float(memory),
            parent_pid=ppid,
        )
