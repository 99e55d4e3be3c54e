from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .security.gate import AccessTier


class ClearwaterError(Exception):
    """Base class for errors raised by the staff portal."""


class AuthenticationMissing(ClearwaterError):
    """No principal is attached to the request."""


class AuthorizationDenied(ClearwaterError):
    """The principal does not hold the tier the operation needs."""

    def __init__(self, tier: "AccessTier", principal_id: str | None = None) -> None:
        super().__init__(f"{principal_id or 'principal'} lacks {tier.value} access")
        self.tier = tier
        self.principal_id = principal_id


class DirectoryUnavailable(ClearwaterError):
    """The membership directory could not answer.

    Only directory implementations raise this; RoleResolver absorbs it.
    """


class InvalidLogRequest(ClearwaterError):
    """A log draft was rejected before reaching the store."""
