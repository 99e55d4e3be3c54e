from __future__ import annotations

from datetime import datetime
from typing import Callable

import aiosqlite
import discord

from ..models import ActivityEntry, Principal, from_iso, to_iso
from .base import BaseService


class ActivityRecorder(BaseService[ActivityEntry]):
    """Append-only record of staff actions for Human Resources review.

    Kept apart from the moderation log: recording is best effort and never
    affects the log mutation it describes.
    """

    def __init__(self, sqlite_path: str, clock: Callable[[], datetime] = discord.utils.utcnow) -> None:
        super().__init__(sqlite_path)
        self._clock = clock

    async def _create_tables(self, db: aiosqlite.Connection) -> None:
        await db.execute(
            """
            CREATE TABLE IF NOT EXISTS staff_activity (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              actor_id TEXT NOT NULL,
              actor_name TEXT NOT NULL,
              avatar_ref TEXT NULL,
              action TEXT NOT NULL,
              created_at_iso TEXT NOT NULL
            )
            """
        )
        await db.execute("CREATE INDEX IF NOT EXISTS idx_activity_actor ON staff_activity(actor_id, id)")

    def _from_row(self, row: aiosqlite.Row) -> ActivityEntry:
        return ActivityEntry(
            id=int(row["id"]),
            actor_id=str(row["actor_id"]),
            actor_name=str(row["actor_name"]),
            avatar_ref=row["avatar_ref"],
            action=str(row["action"]),
            created_at=from_iso(row["created_at_iso"]),
        )

    @property
    def _get_query(self) -> str:
        return "SELECT id, actor_id, actor_name, avatar_ref, action, created_at_iso FROM staff_activity WHERE id = ?"

    async def record(self, actor: Principal, action: str) -> bool:
        """Append one entry. Returns False instead of raising when storage fails."""
        try:
            async with aiosqlite.connect(self._path) as db:
                await db.execute(
                    "INSERT INTO staff_activity (actor_id, actor_name, avatar_ref, action, created_at_iso) VALUES (?, ?, ?, ?, ?)",
                    (actor.id, actor.display_name, actor.avatar_ref, action, to_iso(self._clock())),
                )
                await db.commit()
        except (aiosqlite.Error, OSError) as e:
            self._logger.warning("Failed to record activity for %s (%r): %s", actor.id, action, e)
            return False
        return True

    async def list_recent(self, limit: int = 50) -> list[ActivityEntry]:
        limit = max(1, min(500, int(limit)))
        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT id, actor_id, actor_name, avatar_ref, action, created_at_iso FROM staff_activity ORDER BY id DESC LIMIT ?",
                (limit,),
            ) as cur:
                rows = await cur.fetchall()
        return [self._from_row(r) for r in rows]
