from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from ..errors import AuthenticationMissing, AuthorizationDenied
from ..models import Principal, RoleVerdict
from .roles import RoleResolver

log = logging.getLogger("clearwater.security.gate")


class AccessTier(Enum):
    """Independent access levels; holding one implies nothing about the others."""

    STAFF = "staff"
    DISPATCH = "dispatch"
    HUMAN_RESOURCES = "human_resources"

    @property
    def flag(self) -> str:
        return _TIER_FLAGS[self]

    @property
    def label(self) -> str:
        return _TIER_LABELS[self]


_TIER_FLAGS = {
    AccessTier.STAFF: "is_staff",
    AccessTier.DISPATCH: "has_dispatch_access",
    AccessTier.HUMAN_RESOURCES: "is_human_resources",
}

_TIER_LABELS = {
    AccessTier.STAFF: "Staff",
    AccessTier.DISPATCH: "Dispatch (CAD)",
    AccessTier.HUMAN_RESOURCES: "Human Resources",
}


class AccessDecision(Enum):
    ALLOWED = "allowed"
    # No principal: send the user to sign in.
    UNAUTHENTICATED = "unauthenticated"
    # Signed in without the tier: show access denied, never the sign-in flow.
    DENIED = "denied"


class AccessGate:
    def __init__(self, resolver: RoleResolver) -> None:
        self._resolver = resolver

    async def verdict_for(self, principal: Optional[Principal]) -> Optional[RoleVerdict]:
        if principal is None:
            return None
        return await self._resolver.resolve(principal.id)

    async def authorize(self, principal: Optional[Principal], tier: AccessTier) -> AccessDecision:
        verdict = await self.verdict_for(principal)
        if verdict is None:
            return AccessDecision.UNAUTHENTICATED
        if verdict.has(tier.flag):
            return AccessDecision.ALLOWED
        log.info("Denied %s access to %s", tier.value, principal.id)
        return AccessDecision.DENIED

    async def require(self, principal: Optional[Principal], tier: AccessTier) -> RoleVerdict:
        """Like authorize(), but raises instead of returning a non-ALLOWED decision."""
        verdict = await self.verdict_for(principal)
        if verdict is None:
            raise AuthenticationMissing("no principal attached to request")
        if not verdict.has(tier.flag):
            log.info("Denied %s access to %s", tier.value, principal.id)
            raise AuthorizationDenied(tier, principal.id)
        return verdict
