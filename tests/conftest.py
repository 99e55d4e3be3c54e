from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from clearwater.security.gate import AccessGate
from clearwater.security.roles import RoleResolver
from clearwater.services.activity import ActivityRecorder
from clearwater.services.escalation import EscalationEngine
from clearwater.services.log_store import LogStore
from clearwater.services.portal import StaffPortal
from clearwater.testing.fakes import FakeMembershipDirectory

GUILD_ID = 1000
STAFF_ROLE = 11
CAD_ROLE = 22
HR_ROLE = 33

ROLE_MAP = {
    "is_staff": STAFF_ROLE,
    "has_dispatch_access": CAD_ROLE,
    "is_human_resources": HR_ROLE,
}


class StepClock:
    """Each call returns a moment one second after the previous one."""

    def __init__(self) -> None:
        self._now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self._now += timedelta(seconds=1)
        return self._now


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "clearwater.sqlite3")


@pytest_asyncio.fixture
async def log_store(db_path) -> LogStore:
    store = LogStore(db_path, clock=StepClock())
    await store.init()
    return store


@pytest_asyncio.fixture
async def activity(db_path) -> ActivityRecorder:
    recorder = ActivityRecorder(db_path, clock=StepClock())
    await recorder.init()
    return recorder


@pytest.fixture
def engine(log_store) -> EscalationEngine:
    return EscalationEngine(log_store)


@pytest.fixture
def directory() -> FakeMembershipDirectory:
    return FakeMembershipDirectory(
        {
            "100": {STAFF_ROLE},
            "101": {STAFF_ROLE},
            "102": {STAFF_ROLE},
            "200": {STAFF_ROLE, HR_ROLE},
            "300": {CAD_ROLE},
            "400": {HR_ROLE},
        }
    )


@pytest.fixture
def resolver(directory) -> RoleResolver:
    resolver = RoleResolver(directory, guild_id=GUILD_ID, role_map=ROLE_MAP, timeout_seconds=1.0)
    resolver.mark_ready()
    return resolver


@pytest.fixture
def gate(resolver) -> AccessGate:
    return AccessGate(resolver)


@pytest.fixture
def portal(gate, log_store, engine, activity) -> StaffPortal:
    return StaffPortal(gate, log_store, engine, activity)
