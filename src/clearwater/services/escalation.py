from __future__ import annotations

import logging
from typing import Optional

from ..constants import ACTION_ACTIVE_BAN_BOLO, AUTOMATION_AUTHOR, ESCALATION_REASON, ESCALATION_THRESHOLD
from ..models import LogDraft, LogEntry, Submission
from .log_store import LogSession, LogStore

log = logging.getLogger("clearwater.escalation")


def escalation_due(count: int, threshold: int = ESCALATION_THRESHOLD) -> bool:
    """True on the 3rd, 6th, 9th ... qualifying entry for a target."""
    return count >= threshold and count % threshold == 0


def ban_bolo_for(trigger: LogEntry, count: int) -> LogDraft:
    return LogDraft(
        author_id=None,
        author_name=AUTOMATION_AUTHOR,
        target_name=trigger.target_name,
        target_id=trigger.target_id,
        action_kind=ACTION_ACTIVE_BAN_BOLO,
        reason=ESCALATION_REASON.format(count=count),
        prior_offense_count=count,
        pinned=True,
    )


class EscalationEngine:
    """Raises a pinned ban BOLO when a target reaches the repeat-offense threshold."""

    def __init__(self, store: LogStore, threshold: int = ESCALATION_THRESHOLD) -> None:
        if threshold < 1:
            raise ValueError("threshold must be positive")
        self._store = store
        self.threshold = threshold

    async def evaluate(self, session: LogSession, entry: LogEntry) -> Optional[LogEntry]:
        """Check a just-inserted entry inside the session that inserted it."""
        if entry.is_automated:
            return None
        count = await session.count_by_target_name(entry.target_name)
        if not escalation_due(count, self.threshold):
            return None
        bolo = await session.insert(ban_bolo_for(entry, count))
        log.info("Escalated %r to ban BOLO %d after %d entries", entry.target_name, bolo.id, count)
        return bolo

    async def submit(self, draft: LogDraft) -> Submission:
        """Insert a staff entry and evaluate it in one write transaction.

        The write lock is held from the count through both inserts, so two
        concurrent submissions for one target cannot both see the same crossing.
        """
        async with self._store.session() as session:
            prior = await session.count_by_target_name(draft.target_name)
            entry = await session.insert(draft.with_prior_offense_count(prior))
            bolo = await self.evaluate(session, entry)
        log.info("Logged %s %d for %r", entry.action_kind, entry.id, entry.target_name)
        return Submission(entry=entry, escalation=bolo)
