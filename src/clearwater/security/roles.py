from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Callable, Mapping

from ..errors import DirectoryUnavailable
from ..models import RoleVerdict
from ..services.cache import TTLCache
from .directory import MembershipDirectory

log = logging.getLogger("clearwater.security.roles")

VERDICT_FLAGS = ("is_staff", "has_dispatch_access", "is_human_resources")


class ResolverState(Enum):
    INITIALIZING = "initializing"
    READY = "ready"


class RoleResolver:
    """Resolves a principal's RoleVerdict from guild role membership.

    Fails closed: while the directory is not ready, or when any lookup errors
    or times out, every flag of the verdict is False. Nothing raised by the
    directory reaches the caller.
    """

    def __init__(
        self,
        directory: MembershipDirectory,
        *,
        guild_id: int,
        role_map: Mapping[str, int],
        timeout_seconds: float = 5.0,
        cache_ttl_seconds: float = 0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        unknown = set(role_map) - set(VERDICT_FLAGS)
        if unknown:
            raise ValueError(f"unknown verdict flags: {sorted(unknown)}")
        self._directory = directory
        self._guild_id = int(guild_id)
        self._role_map = {flag: int(role_map.get(flag, 0) or 0) for flag in VERDICT_FLAGS}
        self._timeout = float(timeout_seconds)
        self._cache: TTLCache[str, RoleVerdict] = TTLCache(cache_ttl_seconds, clock=clock)
        self._state = ResolverState.INITIALIZING

    @property
    def state(self) -> ResolverState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is ResolverState.READY

    def mark_ready(self) -> None:
        if self._state is not ResolverState.READY:
            log.info("Role directory ready")
        self._state = ResolverState.READY

    def mark_initializing(self) -> None:
        if self._state is not ResolverState.INITIALIZING:
            log.info("Role directory unavailable; denying until ready")
        self._state = ResolverState.INITIALIZING
        self._cache.clear()

    def invalidate(self, principal_id: str | None = None) -> None:
        if principal_id is None:
            self._cache.clear()
        else:
            self._cache.delete(str(principal_id))

    async def resolve(self, principal_id: str) -> RoleVerdict:
        principal_id = str(principal_id)
        if not self.is_ready:
            return RoleVerdict.denied(principal_id)
        if not self._guild_id:
            log.warning("GUILD_ID is not configured; denying %s", principal_id)
            return RoleVerdict.denied(principal_id)

        cached = self._cache.get(principal_id)
        if cached is not None:
            return cached

        try:
            flags = await asyncio.wait_for(self._check_all(principal_id), timeout=self._timeout)
        except asyncio.TimeoutError:
            log.warning("Role lookup for %s timed out after %.1fs", principal_id, self._timeout)
            return RoleVerdict.denied(principal_id)
        except DirectoryUnavailable as e:
            log.warning("Role lookup for %s failed: %s", principal_id, e)
            # An outage that keeps the gateway up still voids every cached verdict.
            self._cache.clear()
            return RoleVerdict.denied(principal_id)
        except Exception:
            log.warning("Role lookup for %s raised unexpectedly", principal_id, exc_info=True)
            return RoleVerdict.denied(principal_id)

        # The gateway may have dropped while we were waiting on it.
        if not self.is_ready:
            return RoleVerdict.denied(principal_id)

        verdict = RoleVerdict(principal_id=principal_id, **flags)
        self._cache.set(principal_id, verdict)
        return verdict

    async def _check_all(self, principal_id: str) -> dict[str, bool]:
        flags = {flag: False for flag in VERDICT_FLAGS}
        checks = {flag: role_id for flag, role_id in self._role_map.items() if role_id}
        if not checks:
            return flags

        results = await asyncio.gather(
            *(self._directory.has_role(self._guild_id, principal_id, role_id) for role_id in checks.values()),
            return_exceptions=True,
        )
        for flag, result in zip(checks, results):
            if isinstance(result, BaseException):
                raise result
            flags[flag] = bool(result)
        return flags
