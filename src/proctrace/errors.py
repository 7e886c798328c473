"""Exception taxonomy shared by the monitor, registry and session store."""

from __future__ import annotations


class ProcTraceError(Exception):
    """Base class for all proctrace errors."""


class ProcessNotFound(ProcTraceError):
    """The target process does not exist (at start, or it vanished mid-poll)."""

    def __init__(self, pid: int) -> None:
        super().__init__(f"Process with PID {pid} not found")
        self.pid = pid


class AlreadyMonitoring(ProcTraceError):
    """A monitor is already running (or starting) for this PID."""

    def __init__(self, pid: int) -> None:
        super().__init__(f"Monitor already running for PID {pid}")
        self.pid = pid


class SamplingError(ProcTraceError):
    """Transient failure reading resource usage of a live process."""


class StorageError(ProcTraceError):
    """A session store write failed."""


class SessionClosedError(StorageError):
    """A sample was appended to a session that has already been finalized."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id} is closed")
        self.session_id = session_id
