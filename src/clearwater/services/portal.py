from __future__ import annotations

import logging
from typing import Optional

from ..constants import ACTION_ACTIVE_BAN_BOLO
from ..errors import InvalidLogRequest
from ..models import (
    ActivityEntry,
    CompletionResult,
    DeletionResult,
    LogDraft,
    LogEntry,
    Principal,
    RoleVerdict,
    Submission,
)
from ..security.gate import AccessGate, AccessTier
from .activity import ActivityRecorder
from .escalation import EscalationEngine
from .log_store import LogStore

log = logging.getLogger("clearwater.portal")

MAX_TARGET_NAME = 100
MAX_ACTION_KIND = 32
MAX_REASON = 1000


def _validate(target_name: str, action_kind: str, reason: str) -> None:
    if not target_name.strip():
        raise InvalidLogRequest("target name is required")
    if len(target_name.strip()) > MAX_TARGET_NAME:
        raise InvalidLogRequest(f"target name is longer than {MAX_TARGET_NAME} characters")
    kind = action_kind.strip()
    if not kind or len(kind) > MAX_ACTION_KIND:
        raise InvalidLogRequest("action kind is required")
    if kind == ACTION_ACTIVE_BAN_BOLO:
        raise InvalidLogRequest(f"{ACTION_ACTIVE_BAN_BOLO} entries are only raised by automation")
    if len(reason) > MAX_REASON:
        raise InvalidLogRequest(f"reason is longer than {MAX_REASON} characters")


class StaffPortal:
    """The tier-gated operations the staff surfaces call.

    Every method authorizes first and raises AuthenticationMissing or
    AuthorizationDenied before touching storage. Entry-level outcomes come back
    as CompletionResult / DeletionResult values.
    """

    def __init__(
        self,
        gate: AccessGate,
        logs: LogStore,
        escalation: EscalationEngine,
        activity: ActivityRecorder,
        *,
        log_list_limit: int = 50,
        activity_list_limit: int = 50,
    ) -> None:
        self.gate = gate
        self.logs = logs
        self.escalation = escalation
        self.activity = activity
        self._log_list_limit = log_list_limit
        self._activity_list_limit = activity_list_limit

    async def list_logs(self, principal: Optional[Principal], limit: Optional[int] = None) -> list[LogEntry]:
        await self.gate.require(principal, AccessTier.STAFF)
        return await self.logs.list(limit or self._log_list_limit).fetch()

    async def create_log(
        self,
        principal: Optional[Principal],
        *,
        target_name: str,
        action_kind: str,
        reason: str = "",
        target_id: Optional[str] = None,
    ) -> Submission:
        await self.gate.require(principal, AccessTier.STAFF)
        _validate(target_name, action_kind, reason)

        draft = LogDraft.by_staff(
            principal,
            target_name=target_name,
            action_kind=action_kind.strip(),
            reason=reason,
            target_id=target_id,
        )
        submission = await self.escalation.submit(draft)
        await self.activity.record(
            principal,
            f"Logged {submission.entry.action_kind} #{submission.entry.id} for {submission.entry.target_name}",
        )
        return submission

    async def complete_log(self, principal: Optional[Principal], log_id: int) -> CompletionResult:
        await self.gate.require(principal, AccessTier.STAFF)
        result = await self.logs.complete(log_id, principal)
        if result is CompletionResult.COMPLETED:
            await self.activity.record(principal, f"Completed ban BOLO #{log_id}")
        return result

    async def delete_log(self, principal: Optional[Principal], log_id: int) -> DeletionResult:
        await self.gate.require(principal, AccessTier.HUMAN_RESOURCES)
        result = await self.logs.delete_by_id(log_id)
        if result is DeletionResult.DELETED:
            await self.activity.record(principal, f"Deleted log #{log_id}")
        return result

    async def review_logs(self, principal: Optional[Principal], limit: Optional[int] = None) -> list[LogEntry]:
        """The log as Human Resources sees it next to the activity trail. Staff is not required."""
        await self.gate.require(principal, AccessTier.HUMAN_RESOURCES)
        return await self.logs.list(limit or self._log_list_limit).fetch()

    async def list_activity(self, principal: Optional[Principal], limit: Optional[int] = None) -> list[ActivityEntry]:
        await self.gate.require(principal, AccessTier.HUMAN_RESOURCES)
        return await self.activity.list_recent(limit or self._activity_list_limit)

    async def dispatch_console(self, principal: Optional[Principal]) -> RoleVerdict:
        return await self.gate.require(principal, AccessTier.DISPATCH)
