from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Callable, Optional

import aiosqlite
import discord

from ..constants import ACTION_ACTIVE_BAN_BOLO, ACTION_BAN, LOG_PAGE_SIZE
from ..models import (
    CompletionResult,
    DeletionResult,
    LogDraft,
    LogEntry,
    Principal,
    from_iso,
    target_key,
    to_iso,
)
from .base import BaseService

_COLUMNS = (
    "id, author_id, author_name, target_id, target_name, action_kind, reason, "
    "prior_offense_count, created_at_iso, pinned, completed, completed_by, "
    "completed_by_id, completed_at_iso"
)


def _count_sql(exclude_automation: bool) -> str:
    query = "SELECT COUNT(*) FROM moderation_logs WHERE target_key = ?"
    if exclude_automation:
        query += " AND author_id IS NOT NULL"
    return query


def _entry_from_row(row: aiosqlite.Row) -> LogEntry:
    return LogEntry(
        id=int(row["id"]),
        author_id=row["author_id"],
        author_name=row["author_name"],
        target_id=row["target_id"],
        target_name=str(row["target_name"]),
        action_kind=str(row["action_kind"]),
        reason=str(row["reason"]),
        prior_offense_count=int(row["prior_offense_count"]),
        created_at=from_iso(row["created_at_iso"]),
        pinned=bool(row["pinned"]),
        completed=bool(row["completed"]),
        completed_by=row["completed_by"],
        completed_by_id=row["completed_by_id"],
        completed_at=from_iso(row["completed_at_iso"]),
    )


class LogSession:
    """Log operations bound to one open write transaction.

    Obtained from ``LogStore.session()``; everything done through one session
    commits or rolls back together.
    """

    def __init__(self, db: aiosqlite.Connection, clock: Callable[[], datetime]) -> None:
        self._db = db
        self._clock = clock

    async def insert(self, draft: LogDraft) -> LogEntry:
        created_at = self._clock()
        cur = await self._db.execute(
            """
            INSERT INTO moderation_logs (
              author_id, author_name, target_id, target_name, target_key, action_kind,
              reason, prior_offense_count, created_at_iso, pinned
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                draft.author_id,
                draft.author_name,
                draft.target_id,
                draft.target_name,
                target_key(draft.target_name),
                draft.action_kind,
                draft.reason,
                int(draft.prior_offense_count),
                to_iso(created_at),
                int(draft.pinned),
            ),
        )
        return LogEntry(
            id=int(cur.lastrowid),
            author_id=draft.author_id,
            author_name=draft.author_name,
            target_id=draft.target_id,
            target_name=draft.target_name,
            action_kind=draft.action_kind,
            reason=draft.reason,
            prior_offense_count=int(draft.prior_offense_count),
            created_at=from_iso(to_iso(created_at)),
            pinned=draft.pinned,
        )

    async def count_by_target_name(self, name: str, *, exclude_automation: bool = True) -> int:
        async with self._db.execute(_count_sql(exclude_automation), (target_key(name),)) as cur:
            row = await cur.fetchone()
        return int(row[0]) if row else 0

    async def get(self, log_id: int) -> Optional[LogEntry]:
        async with self._db.execute(f"SELECT {_COLUMNS} FROM moderation_logs WHERE id = ?", (int(log_id),)) as cur:
            row = await cur.fetchone()
        return _entry_from_row(row) if row is not None else None

    async def complete(self, log_id: int, by: Principal) -> CompletionResult:
        # Conditional update: only an open BOLO matches, so a second completion is a no-op.
        cur = await self._db.execute(
            """
            UPDATE moderation_logs
               SET action_kind = ?, completed = 1, pinned = 0,
                   completed_by = ?, completed_by_id = ?, completed_at_iso = ?
             WHERE id = ? AND action_kind = ? AND completed = 0
            """,
            (ACTION_BAN, by.display_name, by.id, to_iso(self._clock()), int(log_id), ACTION_ACTIVE_BAN_BOLO),
        )
        if cur.rowcount == 1:
            return CompletionResult.COMPLETED
        if await self._exists(log_id):
            return CompletionResult.INVALID_TRANSITION
        return CompletionResult.ENTRY_NOT_FOUND

    async def delete(self, log_id: int) -> DeletionResult:
        cur = await self._db.execute("DELETE FROM moderation_logs WHERE id = ?", (int(log_id),))
        return DeletionResult.DELETED if cur.rowcount == 1 else DeletionResult.ENTRY_NOT_FOUND

    async def _exists(self, log_id: int) -> bool:
        async with self._db.execute("SELECT 1 FROM moderation_logs WHERE id = ?", (int(log_id),)) as cur:
            return await cur.fetchone() is not None


class LogListing:
    """Pinned-first, newest-first view over the log.

    Iterating is lazy and finite; every ``async for`` starts a fresh read, so the
    same listing can be iterated again to see later changes.
    """

    def __init__(self, store: "LogStore", limit: Optional[int] = None, page_size: int = LOG_PAGE_SIZE) -> None:
        self._store = store
        self._limit = None if limit is None else max(0, int(limit))
        self._page_size = max(1, int(page_size))

    def __aiter__(self) -> AsyncIterator[LogEntry]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[LogEntry]:
        remaining = self._limit
        after: Optional[tuple[bool, int]] = None
        while remaining is None or remaining > 0:
            size = self._page_size if remaining is None else min(self._page_size, remaining)
            page = await self._store._fetch_page(after, size)
            for entry in page:
                yield entry
            if len(page) < size:
                return
            if remaining is not None:
                remaining -= len(page)
            last = page[-1]
            after = (last.pinned, last.id)

    async def fetch(self) -> list[LogEntry]:
        return [entry async for entry in self]


class LogStore(BaseService[LogEntry]):
    """Moderation log entries keyed by a never-reused integer id."""

    def __init__(self, sqlite_path: str, clock: Callable[[], datetime] = discord.utils.utcnow) -> None:
        super().__init__(sqlite_path)
        self._clock = clock

    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        # AUTOINCREMENT keeps ids of deleted rows from being handed out again.
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS moderation_logs (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              author_id TEXT NULL,
              author_name TEXT NULL,
              target_id TEXT NULL,
              target_name TEXT NOT NULL,
              target_key TEXT NOT NULL,
              action_kind TEXT NOT NULL,
              reason TEXT NOT NULL DEFAULT '',
              prior_offense_count INTEGER NOT NULL DEFAULT 0,
              created_at_iso TEXT NOT NULL,
              pinned INTEGER NOT NULL DEFAULT 0,
              completed INTEGER NOT NULL DEFAULT 0,
              completed_by TEXT NULL,
              completed_by_id TEXT NULL,
              completed_at_iso TEXT NULL
            )
            """
        )
        await db.execute("CREATE INDEX IF NOT EXISTS idx_modlogs_target ON moderation_logs(target_key, author_id)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_modlogs_order ON moderation_logs(pinned, id)")

    def _from_row(self, row: aiosqlite.Row) -> LogEntry:
        return _entry_from_row(row)

    @property
    def _get_query(self) -> str:
        return f"SELECT {_COLUMNS} FROM moderation_logs WHERE id = ?"

    @asynccontextmanager
    async def session(self) -> AsyncIterator[LogSession]:
        """Open an immediate write transaction.

        BEGIN IMMEDIATE takes SQLite's write lock up front, so sessions never
        interleave their reads and writes. Any exception, cancellation included,
        rolls the whole session back.
        """
        async with aiosqlite.connect(self._path, isolation_level=None) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("BEGIN IMMEDIATE")
            try:
                yield LogSession(db, self._clock)
            except BaseException:
                await db.execute("ROLLBACK")
                raise
            await db.execute("COMMIT")

    async def insert(self, draft: LogDraft) -> LogEntry:
        async with self.session() as session:
            entry = await session.insert(draft)
        self._logger.info("Inserted log %d (%s) for %r", entry.id, entry.action_kind, entry.target_name)
        return entry

    def list(self, limit: Optional[int] = None) -> LogListing:
        return LogListing(self, limit)

    async def count_by_target_name(self, name: str, *, exclude_automation: bool = True) -> int:
        async with aiosqlite.connect(self._path) as db:
            async with db.execute(_count_sql(exclude_automation), (target_key(name),)) as cur:
                row = await cur.fetchone()
        return int(row[0]) if row else 0

    async def complete(self, log_id: int, by: Principal) -> CompletionResult:
        async with self.session() as session:
            result = await session.complete(log_id, by)
        self._logger.info("Complete log %s by %s: %s", log_id, by.id, result.value)
        return result

    async def delete_by_id(self, log_id: int) -> DeletionResult:
        async with self.session() as session:
            result = await session.delete(log_id)
        self._logger.info("Delete log %s: %s", log_id, result.value)
        return result

    async def _fetch_page(self, after: Optional[tuple[bool, int]], size: int) -> list[LogEntry]:
        if after is None:
            where, params = "", ()
        else:
            pinned, last_id = int(after[0]), int(after[1])
            where = "WHERE pinned < ? OR (pinned = ? AND id < ?)"
            params = (pinned, pinned, last_id)
        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                f"SELECT {_COLUMNS} FROM moderation_logs {where} ORDER BY pinned DESC, id DESC LIMIT ?",
                (*params, int(size)),
            ) as cur:
                rows = await cur.fetchall()
        return [_entry_from_row(r) for r in rows]
