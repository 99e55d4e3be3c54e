from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

from clearwater.constants import ACTION_ACTIVE_BAN_BOLO, ACTION_WARNING, AUTOMATION_AUTHOR, MAX_EMBED_TOTAL, MAX_FIELDS_PER_EMBED
from clearwater.models import LogEntry
from clearwater.testing.fakes import FakeInteraction, FakeUser
from clearwater.utils import log_entries_embed, principal_from_interaction, safe_embed

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def entry(id: int, *, pinned: bool = False, author_id="100") -> LogEntry:
    return LogEntry(
        id=id,
        author_id=author_id,
        author_name="Avery" if author_id else AUTOMATION_AUTHOR,
        target_id=None,
        target_name="alice",
        action_kind=ACTION_ACTIVE_BAN_BOLO if pinned else ACTION_WARNING,
        reason=f"reason {id}",
        prior_offense_count=0,
        created_at=NOW,
        pinned=pinned,
    )


def test_principal_from_interaction() -> None:
    user = FakeUser(id=42, name="avery", display_name="Avery")

    p = principal_from_interaction(FakeInteraction(user))

    assert p.id == "42"
    assert p.display_name == "Avery"
    assert p.avatar_ref == user.display_avatar.url


def test_principal_missing_user() -> None:
    assert principal_from_interaction(FakeInteraction(None)) is None


def test_log_entries_embed_marks_pinned() -> None:
    embed = log_entries_embed([entry(3, pinned=True, author_id=None), entry(2)])

    assert embed.fields[0].name.startswith("📌 #3")
    assert AUTOMATION_AUTHOR in embed.fields[0].value
    assert not embed.fields[1].name.startswith("📌")


def test_log_entries_embed_caps_fields() -> None:
    embed = log_entries_embed([entry(i) for i in range(40)])
    assert len(embed.fields) == MAX_FIELDS_PER_EMBED


def test_empty_listing() -> None:
    assert log_entries_embed([]).description == "No log entries yet."


def test_safe_embed_clips_title() -> None:
    assert len(safe_embed("x" * 1000).title) <= 256


def test_log_entries_embed_stays_within_message_limit() -> None:
    entries = [replace(entry(i), reason="z" * 250) for i in range(30)]

    embed = log_entries_embed(entries)

    assert len(embed) <= MAX_EMBED_TOTAL
    assert len(embed.fields) < MAX_FIELDS_PER_EMBED
    assert embed.description == f"Showing {len(embed.fields)} of 30 entries, 0 pinned."


def test_log_entries_embed_leaves_room_for_other_embeds() -> None:
    entries = [replace(entry(i), reason="z" * 1000) for i in range(10)]
    notice = safe_embed("Success", "n" * 2000)

    embed = log_entries_embed(entries, reserve=len(notice))

    assert len(embed) + len(notice) <= MAX_EMBED_TOTAL
    assert embed.fields
