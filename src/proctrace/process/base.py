"""Protocols for the process collaborators the monitor depends on."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from proctrace.process.models import ProcessDescriptor, ResourceUsage


@runtime_checkable
class ProcessLookup(Protocol):
    """Resolves a PID to a descriptor."""

    def find(self, pid: int) -> ProcessDescriptor | None:
        """Return the descriptor for ``pid``, or None if it does not exist."""
        ...


@runtime_checkable
class SampleSource(Protocol):
    """One-shot resource query for a PID."""

    def sample(self, pid: int) -> ResourceUsage:
        """Read current usage.

        Raises ProcessNotFound if the process is gone, SamplingError on any
        other failure.
        """
        ...

    def prime(self, pid: int) -> None:
        """Begin tracking ``pid`` so the first sample covers a full interval.

        Called once when a monitor starts. Raises like sample().
        """
        ...

    def forget(self, pid: int) -> None:
        """Drop any state held for ``pid``. Called when its monitor ends."""
        ...
