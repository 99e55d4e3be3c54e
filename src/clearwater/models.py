from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from .constants import AUTOMATION_AUTHOR


def target_key(name: str) -> str:
    """Escalation matching key: surrounding whitespace ignored, Unicode casefolded."""
    return name.strip().casefold()


def to_iso(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_iso(raw: Optional[str]) -> Optional[datetime]:
    if raw is None:
        return None
    moment = datetime.fromisoformat(raw)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass(frozen=True)
class Principal:
    """The signed-in user of a single request."""

    id: str
    display_name: str
    avatar_ref: Optional[str] = None


@dataclass(frozen=True)
class RoleVerdict:
    principal_id: str
    is_staff: bool = False
    has_dispatch_access: bool = False
    is_human_resources: bool = False

    @classmethod
    def denied(cls, principal_id: str) -> "RoleVerdict":
        return cls(principal_id=principal_id)

    def has(self, flag: str) -> bool:
        return bool(getattr(self, flag, False))


@dataclass(frozen=True)
class LogDraft:
    """A log entry before the store assigns its id and timestamp."""

    author_id: Optional[str]
    author_name: Optional[str]
    target_name: str
    action_kind: str
    reason: str = ""
    target_id: Optional[str] = None
    prior_offense_count: int = 0
    pinned: bool = False

    @classmethod
    def by_staff(
        cls,
        author: Principal,
        *,
        target_name: str,
        action_kind: str,
        reason: str = "",
        target_id: Optional[str] = None,
    ) -> "LogDraft":
        return cls(
            author_id=author.id,
            author_name=author.display_name,
            target_name=target_name.strip(),
            target_id=(target_id.strip() or None) if target_id else None,
            action_kind=action_kind,
            reason=reason.strip(),
        )

    def with_prior_offense_count(self, count: int) -> "LogDraft":
        return replace(self, prior_offense_count=int(count))

    @property
    def is_automated(self) -> bool:
        return self.author_id is None


@dataclass(frozen=True)
class LogEntry:
    id: int
    author_id: Optional[str]
    author_name: Optional[str]
    target_id: Optional[str]
    target_name: str
    action_kind: str
    reason: str
    prior_offense_count: int
    created_at: datetime
    pinned: bool = False
    completed: bool = False
    completed_by: Optional[str] = None
    completed_by_id: Optional[str] = None
    completed_at: Optional[datetime] = None

    @property
    def is_automated(self) -> bool:
        return self.author_id is None

    @property
    def author_label(self) -> str:
        if self.is_automated:
            return AUTOMATION_AUTHOR
        return self.author_name or str(self.author_id)


@dataclass(frozen=True)
class ActivityEntry:
    id: int
    actor_id: str
    actor_name: str
    avatar_ref: Optional[str]
    action: str
    created_at: datetime


class CompletionResult(Enum):
    COMPLETED = "completed"
    ENTRY_NOT_FOUND = "entry_not_found"
    INVALID_TRANSITION = "invalid_transition"


class DeletionResult(Enum):
    DELETED = "deleted"
    ENTRY_NOT_FOUND = "entry_not_found"


@dataclass(frozen=True)
class Submission:
    """A staff entry as stored, plus the BOLO it triggered, if any."""

    entry: LogEntry
    escalation: Optional[LogEntry] = None

    @property
    def escalated(self) -> bool:
        return self.escalation is not None
