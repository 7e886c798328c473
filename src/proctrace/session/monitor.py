"""Monitor — polls one process at a fixed interval and reports what it sees."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from proctrace.errors import ProcessNotFound, SamplingError, StorageError
from proctrace.process.base import ProcessLookup, SampleSource
from proctrace.process.models import ProcessDescriptor
from proctrace.session.models import (
    MonitorEvent,
    MonitorEventType,
    MonitorState,
    Sample,
)

logger = logging.getLogger(__name__)

MonitorListener = Callable[[MonitorEvent], Awaitable[None]]


class Monitor:
    """Sampling loop for exactly one target process.

    Idle -> Running on start(), Running -> Stopped on stop() or when the
    process disappears. The next tick is scheduled only after the current
    poll, including the listener call, has finished, so at most one poll is
    in flight at any time.
    """

    def __init__(
        self,
        pid: int,
        lookup: ProcessLookup,
        source: SampleSource,
        listener: MonitorListener,
        interval: float = 0.5,
    ) -> None:
        self._pid = pid
        self._lookup = lookup
        self._source = source
        self._listener = listener
        self._interval = interval
        self._state = MonitorState.IDLE
        self._wake = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self._last_timestamp = 0.0

    @property
    def pid(self) -> int:
        return self._pid

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is MonitorState.RUNNING

    async def start(self) -> ProcessDescriptor | None:
        """Verify the target exists and begin polling.

        Returns the process descriptor, or None if already running.
        Raises ProcessNotFound (state stays Idle) if the target is gone.
        """
        if self._state is MonitorState.RUNNING:
            return None
        if self._state is MonitorState.STOPPED:
            raise RuntimeError("Monitor already stopped — create a new one")

        descriptor = self._lookup.find(self._pid)
        if descriptor is None:
            raise ProcessNotFound(self._pid)
        try:
            self._source.prime(self._pid)
        except SamplingError as exc:
            logger.warning("Could not prime PID %d: %s", self._pid, exc)

        self._state = MonitorState.RUNNING
        self._task = asyncio.create_task(
            self._run(), name=f"proctrace-monitor-{self._pid}"
        )
        logger.info("Monitoring PID %d every %.3fs", self._pid, self._interval)
        return descriptor

    async def stop(self) -> None:
        """Stop polling and emit ``stopped``.

        Idempotent: calling it again still emits ``stopped``.
        """
        if self._state is not MonitorState.STOPPED:
            logger.info("Stopping monitor for PID %d", self._pid)
        self._state = MonitorState.STOPPED
        self._wake.set()
        await self._emit(MonitorEvent(MonitorEventType.STOPPED, self._pid))

    async def wait_closed(self) -> None:
        """Wait until the polling task has exited."""
        if self._task is not None:
            await asyncio.shield(self._task)

    async def _run(self) -> None:
        # First tick comes one interval after start(), so the first CPU
        # reading covers a whole interval since prime()
        while self._state is MonitorState.RUNNING:
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass
            if self._state is not MonitorState.RUNNING:
                break
            await self._poll()
        logger.debug("Poll loop for PID %d exited", self._pid)

    async def _poll(self) -> None:
        try:
            usage = await asyncio.to_thread(self._source.sample, self._pid)
        except ProcessNotFound:
            if self._state is not MonitorState.RUNNING:
                return
            logger.info("Process %d no longer exists", self._pid)
            self._state = MonitorState.STOPPED
            await self._emit(MonitorEvent(MonitorEventType.TERMINATED, self._pid))
            return
        except SamplingError as exc:
            logger.warning("Sampling PID %d failed: %s", self._pid, exc)
            await self._emit(
                MonitorEvent(MonitorEventType.ERROR, self._pid, message=str(exc))
            )
            return
        except Exception as exc:
            logger.exception("Unexpected failure sampling PID %d", self._pid)
            await self._emit(
                MonitorEvent(MonitorEventType.ERROR, self._pid, message=str(exc))
            )
            return

        # Wall clock may step backwards; samples must not
        self._last_timestamp = max(time.time(), self._last_timestamp)
        sample = Sample(
            cpu_percent=usage.cpu_percent,
            memory_bytes=usage.memory_bytes,
            parent_pid=usage.parent_pid,
            timestamp=self._last_timestamp,
        )
        try:
            await self._emit(MonitorEvent(MonitorEventType.DATA, self._pid, sample))
        except StorageError as exc:
            await self._emit(
                MonitorEvent(MonitorEventType.ERROR, self._pid, message=str(exc))
            )
        except Exception as exc:
            logger.exception("Listener failed on a sample for PID %d", self._pid)
            await self._emit(
                MonitorEvent(MonitorEventType.ERROR, self._pid, message=str(exc))
            )

    async def _emit(self, event: MonitorEvent) -> None:
        await self._listener(event)
