"""MonitorRegistry — at most one live monitor per PID, events fanned out."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from proctrace.errors import AlreadyMonitoring, ProcessNotFound, StorageError
from proctrace.process.base import ProcessLookup, SampleSource
from proctrace.process.models import ProcessDescriptor
from proctrace.session.broadcast import Broadcaster
from proctrace.session.models import MonitorEvent, MonitorEventType, Session
from proctrace.session.monitor import Monitor
from proctrace.storage.store import SessionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActiveMonitorEntry:
    """In-memory record of a PID currently being recorded."""

    pid: int
    session_id: str
    monitor: Monitor

    def to_dict(self) -> dict:
        return {"pid": self.pid, "sessionId": self.session_id}


def default_session_name(process: ProcessDescriptor) -> str:
    return f"{process.name} - {datetime.now():%Y-%m-%d %H:%M:%S}"


class MonitorRegistry:
    """Routes start/stop commands to monitors and their sessions.

    Samples are appended to the store before they are broadcast. Stop and
    process termination converge on the same handler, which removes the
    active entry, finalizes the session and broadcasts ``stopped`` once.
    """

    def __init__(
        self,
        store: SessionStore,
        broadcaster: Broadcaster,
        lookup: ProcessLookup,
        source: SampleSource,
        poll_interval: float = 0.5,
    ) -> None:
        self._store = store
        self._broadcaster = broadcaster
        self._lookup = lookup
        self._source = source
        self._poll_interval = poll_interval
        self._entries: dict[int, ActiveMonitorEntry] = {}
        self._starting: set[int] = set()
        self._lock = asyncio.Lock()

    @property
    def broadcaster(self) -> Broadcaster:
        return self._broadcaster

    def get(self, pid: int) -> ActiveMonitorEntry | None:
        return self._entries.get(pid)

    def active(self) -> list[ActiveMonitorEntry]:
        return list(self._entries.values())

    async def handle_start(self, pid: int, name: str | None = None) -> Session:
        """Create a session for ``pid`` and start recording it.

        Raises AlreadyMonitoring if a monitor exists or is being started for
        ``pid``, ProcessNotFound if the process does not exist.
        """
        async with self._lock:
            if pid in self._entries or pid in self._starting:
                raise AlreadyMonitoring(pid)
            self._starting.add(pid)

        try:
            process = self._lookup.find(pid)
            if process is None:
                raise ProcessNotFound(pid)

            session = await self._store.create_session(
                name or default_session_name(process),
                pid,
                process.name,
                process.command,
            )

            async def listener(event: MonitorEvent) -> None:
                await self._on_monitor_event(session.id, monitor, event)

            monitor = Monitor(
                pid,
                self._lookup,
                self._source,
                listener,
                interval=self._poll_interval,
            )
            try:
                await monitor.start()
            except ProcessNotFound:
                # Vanished between lookup and start; leave no session behind
                await self._store.delete_session(session.id)
                raise

            async with self._lock:
                self._entries[pid] = ActiveMonitorEntry(pid, session.id, monitor)
        finally:
            self._starting.discard(pid)

        logger.info("Recording PID %d into session %s", pid, session.id)
        self._broadcaster.publish(
            "started",
            {"session": session.to_dict(), "process": process.to_dict()},
        )
        return session

    async def handle_stop(self, pid: int) -> Session | None:
        """Stop recording ``pid``. A PID that is not monitored is ignored.

        Returns the finalized session, or None if nothing was running.
        """
        entry = self._entries.get(pid)
        if entry is None:
            logger.debug("Stop for PID %d ignored — not monitored", pid)
            return None
        await entry.monitor.stop()
        return await self._store.get_session(entry.session_id)

    async def stop_all(self) -> None:
        entries = self.active()
        for entry in entries:
            try:
                await entry.monitor.stop()
            except Exception:
                logger.exception("Failed to stop monitor for PID %d", entry.pid)
        results = await asyncio.gather(
            *(entry.monitor.wait_closed() for entry in entries),
            return_exceptions=True,
        )
        for entry, result in zip(entries, results):
            if isinstance(result, Exception):
                logger.error(
                    "Monitor for PID %d exited with an error: %s", entry.pid, result
                )

    async def _on_monitor_event(
        self,
        session_id: str,
        monitor: Monitor,
        event: MonitorEvent,
    ) -> None:
        if event.type is MonitorEventType.DATA:
            await self._on_data(session_id, monitor, event)
        elif event.type is MonitorEventType.ERROR:
            self._broadcaster.publish(
                "error", {"sessionId": session_id, "message": event.message}
            )
        else:
            await self._on_end(session_id, monitor, event)

    async def _on_data(
        self,
        session_id: str,
        monitor: Monitor,
        event: MonitorEvent,
    ) -> None:
        if not monitor.running or event.sample is None:
            logger.debug("Dropping straggler sample for session %s", session_id)
            return
        # Durable first, so observers never see a sample that replay lacks
        await self._store.append_sample(session_id, event.sample)
        self._broadcaster.publish(
            "datapoint", {"sessionId": session_id, **event.sample.to_dict()}
        )

    async def _on_end(
        self,
        session_id: str,
        monitor: Monitor,
        event: MonitorEvent,
    ) -> None:
        entry = self._entries.get(event.pid)
        if entry is None or entry.monitor is not monitor:
            logger.debug("Duplicate %s for PID %d ignored", event.type.value, event.pid)
            return
        del self._entries[event.pid]
        self._source.forget(event.pid)

        reason = event.type.value
        try:
            session = await self._store.finalize_session(session_id)
        except StorageError as exc:
            self._broadcaster.publish(
                "error", {"sessionId": session_id, "message": str(exc)}
            )
            return

        logger.info("Session %s ended (%s)", session_id, reason)
        self._broadcaster.publish(
            "stopped",
            {
                "session": session.to_dict() if session else None,
                "reason": reason,
            },
        )
