from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import discord

from .constants import (
    COLORS,
    MAX_EMBED_DESCRIPTION,
    MAX_EMBED_TITLE,
    MAX_EMBED_TOTAL,
    MAX_FIELD_NAME,
    MAX_FIELD_VALUE,
    MAX_FIELDS_PER_EMBED,
)
from .models import ActivityEntry, LogEntry, Principal, RoleVerdict

log = logging.getLogger("clearwater.utils")


def _clip(text: str, limit: int) -> str:
    if len(text) > limit:
        return text[: limit - 1] + "…"
    return text


def safe_embed(title: str, description: str = "", color: int = COLORS["default"]) -> discord.Embed:
    """Create an embed with safe length limits."""
    return discord.Embed(
        title=_clip(title, MAX_EMBED_TITLE),
        description=_clip(description, MAX_EMBED_DESCRIPTION),
        color=color,
    )


def error_embed(message: str) -> discord.Embed:
    return safe_embed("Error", message, COLORS["error"])


def success_embed(message: str) -> discord.Embed:
    return safe_embed("Success", message, COLORS["success"])


def info_embed(message: str) -> discord.Embed:
    return safe_embed("Information", message, COLORS["info"])


async def safe_response(
    interaction: discord.Interaction,
    content: Optional[str] = None,
    embed: Optional[discord.Embed] = None,
    ephemeral: bool = True,
    **kwargs: Any,
) -> bool:
    """Respond to an interaction, following up if it was already answered or deferred."""
    if embed is not None:
        kwargs["embed"] = embed
    try:
        if interaction.response.is_done():
            await interaction.followup.send(content=content, ephemeral=ephemeral, **kwargs)
        else:
            await interaction.response.send_message(content=content, ephemeral=ephemeral, **kwargs)
        return True
    except discord.HTTPException as e:
        log.error("Failed to send response: %s", e)
        return False


def principal_from_interaction(interaction: discord.Interaction) -> Optional[Principal]:
    user = getattr(interaction, "user", None)
    if user is None:
        return None
    avatar = getattr(user, "display_avatar", None)
    return Principal(
        id=str(user.id),
        display_name=getattr(user, "display_name", None) or user.name,
        avatar_ref=(avatar.url if avatar is not None else None),
    )


def _stamp(entry_time) -> str:
    return discord.utils.format_dt(entry_time, style="R")


def _entry_field(entry: LogEntry) -> tuple[str, str]:
    marker = "📌 " if entry.pinned else ""
    name = f"{marker}#{entry.id} · {entry.action_kind} · {entry.target_name}"
    lines = [entry.reason or "(no reason given)"]
    if entry.target_id:
        lines.append(f"Target id: {entry.target_id}")
    lines.append(f"By {entry.author_label} · {entry.prior_offense_count} prior · {_stamp(entry.created_at)}")
    if entry.completed:
        lines.append(f"Completed by {entry.completed_by} {_stamp(entry.completed_at)}")
    return _clip(name, MAX_FIELD_NAME), _clip("\n".join(lines), MAX_FIELD_VALUE)


# Room kept for the "Showing ..." description.
_SUMMARY_ALLOWANCE = 80


def log_entries_embed(entries: Sequence[LogEntry], title: str = "Staff Logs", reserve: int = 0) -> discord.Embed:
    """Render a listing that fits in one message.

    ``reserve`` is the length of any other embed sent in the same message.
    Entries past the field cap or the total length budget are left out and
    the description says how many were shown.
    """
    pinned = sum(1 for e in entries if e.pinned)
    color = COLORS["pinned"] if pinned else COLORS["default"]
    if not entries:
        return safe_embed(title, "No log entries yet.", color)

    budget = MAX_EMBED_TOTAL - reserve - len(title) - _SUMMARY_ALLOWANCE
    fields: list[tuple[str, str]] = []
    for entry in entries[:MAX_FIELDS_PER_EMBED]:
        name, value = _entry_field(entry)
        if len(name) + len(value) > budget:
            break
        budget -= len(name) + len(value)
        fields.append((name, value))

    embed = safe_embed(title, f"Showing {len(fields)} of {len(entries)} entries, {pinned} pinned.", color)
    for name, value in fields:
        embed.add_field(name=name, value=value, inline=False)
    return embed


def activity_embed(entries: Sequence[ActivityEntry]) -> discord.Embed:
    if not entries:
        return safe_embed("Staff Activity", "No staff activity recorded.", COLORS["info"])
    lines = [f"{_stamp(e.created_at)} **{e.actor_name}** {e.action}" for e in entries]
    return safe_embed("Staff Activity", "\n".join(lines), COLORS["info"])


def verdict_embed(principal: Principal, verdict: RoleVerdict) -> discord.Embed:
    def mark(flag: bool) -> str:
        return "✅" if flag else "❌"

    embed = safe_embed("Portal Access", f"Access for **{principal.display_name}**", COLORS["info"])
    embed.add_field(name="Staff", value=mark(verdict.is_staff))
    embed.add_field(name="Dispatch (CAD)", value=mark(verdict.has_dispatch_access))
    embed.add_field(name="Human Resources", value=mark(verdict.is_human_resources))
    return embed
