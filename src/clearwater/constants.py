from __future__ import annotations

from typing import Final

# Discord limits
MAX_EMBED_DESCRIPTION: Final[int] = 4096
MAX_EMBED_TITLE: Final[int] = 256
MAX_FIELD_NAME: Final[int] = 256
MAX_FIELD_VALUE: Final[int] = 1024
MAX_FIELDS_PER_EMBED: Final[int] = 25
# Combined length of every embed in one message.
MAX_EMBED_TOTAL: Final[int] = 6000

# Moderation log action kinds. The column is an open-ended tag; only
# ACTION_ACTIVE_BAN_BOLO and ACTION_BAN carry engine semantics.
ACTION_NOTE: Final[str] = "Note"
ACTION_WARNING: Final[str] = "Warning"
ACTION_KICK: Final[str] = "Kick"
ACTION_BAN: Final[str] = "Ban"
ACTION_ACTIVE_BAN_BOLO: Final[str] = "ActiveBanBolo"

STAFF_ACTION_KINDS: Final[tuple[str, ...]] = (ACTION_NOTE, ACTION_WARNING, ACTION_KICK, ACTION_BAN)

# Author name of entries written by the escalation engine. Their author id is NULL.
AUTOMATION_AUTHOR: Final[str] = "Automation"

# Number of qualifying log entries for one target that raises a ban BOLO.
# Escalation fires at every multiple of this value.
ESCALATION_THRESHOLD: Final[int] = 3
ESCALATION_REASON: Final[str] = "Reached {count} previous punishments"

# Listing page size used when streaming log entries from SQLite.
LOG_PAGE_SIZE: Final[int] = 100

COLORS = {
    "default": 0x5865F2,
    "success": 0x57F287,
    "error": 0xED4245,
    "info": 0x3498DB,
    "pinned": 0xE67E22,
}

ERROR_MESSAGES = {
    "unauthenticated": "You need to sign in before using the staff portal.",
    "access_denied": "Access denied. You do not hold the role required for this.",
    "entry_unavailable": "That log entry could not be updated.",
    "invalid_request": "That log entry is not valid.",
    "unexpected": "Something went wrong. Please try again later.",
}
