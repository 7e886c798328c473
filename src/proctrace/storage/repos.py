"""Repository classes for async CRUD operations on SQLite."""

from __future__ import annotations

import aiosqlite

from proctrace.session.models import Sample, Session


class SessionRepo:
    """CRUD for recording sessions."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def create(self, session: Session) -> None:
        await self._db.execute(
            "INSERT INTO sessions "
            "(id, name, pid, process_name, command, start_time, end_time) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                session.id,
                session.name,
                session.pid,
                session.process_name,
                session.command,
                session.start_time,
                session.end_time,
            ),
        )
        await self._db.commit()

    async def finalize(self, session_id: str, end_time: float) -> int:
        """Close an open session and store its aggregates in one statement.

        Returns the number of rows changed: 0 if the session is missing or
        was already closed.
        """
        cursor = await self._db.execute(
            "UPDATE sessions SET "
            "end_time = ?, "
            "avg_cpu = (SELECT AVG(cpu_percent) FROM samples WHERE session_id = ?), "
            "max_cpu = (SELECT MAX(cpu_percent) FROM samples WHERE session_id = ?), "
            "avg_memory = (SELECT AVG(memory_bytes) FROM samples WHERE session_id = ?), "
            "max_memory = (SELECT MAX(memory_bytes) FROM samples WHERE session_id = ?) "
            "WHERE id = ? AND end_time IS NULL",
            (end_time, session_id, session_id, session_id, session_id, session_id),
        )
        await self._db.commit()
        return cursor.rowcount

    async def rename(self, session_id: str, name: str) -> int:
        cursor = await self._db.execute(
            "UPDATE sessions SET name = ? WHERE id = ?", (name, session_id)
        )
        await self._db.commit()
        return cursor.rowcount

    async def delete(self, session_id: str) -> int:
        # samples go with it via ON DELETE CASCADE
        cursor = await self._db.execute(
            "DELETE FROM sessions WHERE id = ?", (session_id,)
        )
        await self._db.commit()
        return cursor.rowcount

    async def get(self, session_id: str) -> dict | None:
        cursor = await self._db.execute(
            "SELECT * FROM sessions WHERE id = ?", (session_id,)
        )
        row = await cursor.fetchone()
        return dict(row) if row else None

    async def list_all(self, limit: int = -1, offset: int = 0) -> list[dict]:
        cursor = await self._db.execute(
            "SELECT * FROM sessions ORDER BY start_time DESC LIMIT ? OFFSET ?",
            (limit, offset),
        )
        return [dict(row) async for row in cursor]


class SampleRepo:
    """Append-only storage for samples."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def append(self, session_id: str, sample: Sample) -> int:
        """Insert a sample if its session exists and is still open.

        Returns the number of rows inserted (0 or 1).
        """
        cursor = await self._db.execute(
            "INSERT INTO samples "
            "(session_id, timestamp, cpu_percent, memory_bytes, parent_pid) "
            "SELECT ?, ?, ?, ?, ? "
            "WHERE EXISTS ("
            "  SELECT 1 FROM sessions WHERE id = ? AND end_time IS NULL"
            ")",
            (
                session_id,
                sample.timestamp,
                sample.cpu_percent,
                sample.memory_bytes,
                sample.parent_pid,
                session_id,
            ),
        )
        await self._db.commit()
        return cursor.rowcount

    async def count(self, session_id: str) -> int:
        cursor = await self._db.execute(
            "SELECT COUNT(*) FROM samples WHERE session_id = ?", (session_id,)
        )
        row = await cursor.fetchone()
        return row[0]

    async def list_by_session(self, session_id: str) -> list[dict]:
        cursor = await self._db.execute(
            "SELECT timestamp, cpu_percent, memory_bytes, parent_pid "
            "FROM samples WHERE session_id = ? ORDER BY timestamp, id",
            (session_id,),
        )
        return [dict(row) async for row in cursor]
