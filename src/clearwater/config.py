from __future__ import annotations

import os
from dataclasses import dataclass


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_str(name: str, default: str) -> str:
    return os.getenv(name, default).strip() or default


@dataclass(frozen=True)
class Settings:
    token: str
    guild_id: int
    staff_role_id: int
    cad_role_id: int
    hr_role_id: int
    sync_guild_id: int
    sqlite_path: str
    log_level: str
    # Upper bound for one principal's role lookup against Discord.
    role_check_timeout_seconds: float = 5.0
    # 0 disables the verdict cache; every access check hits the directory.
    role_cache_ttl_seconds: int = 0
    log_list_limit: int = 50
    activity_list_limit: int = 50
    cad_url: str = ""

    def role_map(self) -> dict[str, int]:
        """Verdict flag name -> guild role id."""
        return {
            "is_staff": self.staff_role_id,
            "has_dispatch_access": self.cad_role_id,
            "is_human_resources": self.hr_role_id,
        }


def load_settings() -> Settings:
    token = os.getenv("DISCORD_TOKEN", "").strip()
    if not token:
        raise RuntimeError("DISCORD_TOKEN is required")
    return Settings(
        token=token,
        guild_id=_get_int("GUILD_ID", 0),
        staff_role_id=_get_int("STAFF_ROLE_ID", 0),
        cad_role_id=_get_int("CAD_ROLE_ID", 0),
        hr_role_id=_get_int("HR_ROLE_ID", 0),
        sync_guild_id=_get_int("SYNC_GUILD_ID", 0),
        sqlite_path=_get_str("SQLITE_PATH", "clearwater.sqlite3"),
        log_level=_get_str("LOG_LEVEL", "INFO"),
        role_check_timeout_seconds=max(0.1, _get_float("ROLE_CHECK_TIMEOUT_SECONDS", 5.0)),
        role_cache_ttl_seconds=max(0, _get_int("ROLE_CACHE_TTL_SECONDS", 0)),
        log_list_limit=max(1, _get_int("LOG_LIST_LIMIT", 50)),
        activity_list_limit=max(1, _get_int("ACTIVITY_LIST_LIMIT", 50)),
        cad_url=os.getenv("CAD_URL", "").strip(),
    )
