"""SessionStore — durable sessions, append-only samples, one-shot aggregates."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

import aiosqlite

from proctrace.errors import SessionClosedError, StorageError
from proctrace.session.models import Sample, Session
from proctrace.storage.repos import SampleRepo, SessionRepo

logger = logging.getLogger(__name__)


class SessionStore:
    """Session CRUD plus aggregate computation at finalization.

    Writes are serialized through a single lock so that appends and the
    finalizing update for a session take effect in call order. Finalizing
    twice is a no-op: the second call returns the already-closed record and
    never recomputes aggregates. Appending to a closed session raises
    SessionClosedError.
    """

    def __init__(
        self,
        db: aiosqlite.Connection,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._sessions = SessionRepo(db)
        self._samples = SampleRepo(db)
        self._clock = clock
        self._write_lock = asyncio.Lock()

    @asynccontextmanager
    async def _writing(self, what: str) -> AsyncIterator[None]:
        async with self._write_lock:
            try:
                yield
            except aiosqlite.Error as exc:
                logger.warning("Storage failure during %s: %s", what, exc)
                raise StorageError(f"Failed to {what}: {exc}") from exc

    async def create_session(
        self,
        name: str,
        pid: int,
        process_name: str,
        command: str,
    ) -> Session:
        session = Session(
            id=uuid.uuid4().hex,
            name=name,
            pid=pid,
            process_name=process_name,
            command=command,
            start_time=self._clock(),
        )
        async with self._writing("create session"):
            await self._sessions.create(session)
        logger.info("Created session %s for PID %d", session.id, pid)
        return session

    async def append_sample(self, session_id: str, sample: Sample) -> None:
        async with self._writing("append sample"):
            inserted = await self._samples.append(session_id, sample)
            if inserted:
                return
            if await self._sessions.get(session_id) is None:
                raise StorageError(f"Session {session_id} not found")
        raise SessionClosedError(session_id)

    async def finalize_session(self, session_id: str) -> Session | None:
        """Close the session and compute avg/max over all stored samples."""
        async with self._writing("finalize session"):
            changed = await self._sessions.finalize(session_id, self._clock())
            row = await self._sessions.get(session_id)
        if row is None:
            return None
        if changed:
            logger.info("Finalized session %s", session_id)
        else:
            logger.debug("Session %s already finalized", session_id)
        return Session.from_row(row)

    async def get_session(self, session_id: str) -> Session | None:
        row = await self._sessions.get(session_id)
        return Session.from_row(row) if row else None

    async def get_session_with_samples(self, session_id: str) -> Session | None:
        session = await self.get_session(session_id)
        if session is None:
            return None
        rows = await self._samples.list_by_session(session_id)
        session.samples = [
            Sample(
                timestamp=r["timestamp"],
                cpu_percent=r["cpu_percent"],
                memory_bytes=r["memory_bytes"],
                parent_pid=r["parent_pid"],
            )
            for r in rows
        ]
        return session

    async def list_sessions(self) -> list[Session]:
        return [Session.from_row(r) for r in await self._sessions.list_all()]

    async def count_samples(self, session_id: str) -> int:
        return await self._samples.count(session_id)

    async def rename_session(self, session_id: str, name: str) -> Session | None:
        async with self._writing("rename session"):
            changed = await self._sessions.rename(session_id, name)
        if not changed:
            return None
        return await self.get_session(session_id)

    async def delete_session(self, session_id: str) -> bool:
        async with self._writing("delete session"):
            deleted = await self._sessions.delete(session_id)
        if deleted:
            logger.info("Deleted session %s", session_id)
        return deleted > 0
