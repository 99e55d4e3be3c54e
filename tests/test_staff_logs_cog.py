"""Tests for the slash command replies, driven through fake interactions."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from discord import app_commands

from clearwater.cogs.staff_logs import StaffLogsCog
from clearwater.constants import ACTION_WARNING, MAX_EMBED_TOTAL
from clearwater.errors import AuthorizationDenied
from clearwater.models import LogDraft
from clearwater.testing.fakes import FakeInteraction, FakeUser, principal


@pytest.fixture
def cog(portal) -> StaffLogsCog:
    bot = SimpleNamespace(staff_portal=portal, settings=SimpleNamespace(cad_url=""))
    return StaffLogsCog(bot)


def sent_embeds(interaction: FakeInteraction) -> list:
    (message,) = interaction.messages
    assert message["ephemeral"] is True
    return message["embeds"]


def long_draft(i: int) -> LogDraft:
    return LogDraft.by_staff(principal("100"), target_name=f"player{i}", action_kind=ACTION_WARNING, reason="x" * 1000)


@pytest.mark.asyncio
async def test_hr_only_member_deletes_and_sees_the_log(cog, portal, log_store) -> None:
    keep = await log_store.insert(long_draft(1))
    doomed = await log_store.insert(long_draft(2))
    interaction = FakeInteraction(FakeUser(id=400, name="Harper"))

    await StaffLogsCog.delete.callback(cog, interaction, doomed.id)

    notice, listing = sent_embeds(interaction)
    assert notice.title == "Success"
    assert [f.name.split(" · ")[0] for f in listing.fields] == [f"#{keep.id}"]
    assert await log_store.get(doomed.id) is None


@pytest.mark.asyncio
async def test_staff_without_hr_cannot_delete(cog, log_store) -> None:
    entry = await log_store.insert(long_draft(1))
    interaction = FakeInteraction(FakeUser(id=100))

    with pytest.raises(AuthorizationDenied):
        await StaffLogsCog.delete.callback(cog, interaction, entry.id)

    assert await log_store.get(entry.id) == entry
    assert interaction.messages == []


@pytest.mark.asyncio
async def test_hr_only_member_reviews_activity_and_log(cog, portal) -> None:
    await portal.create_log(principal("100", "Avery"), target_name="alice", action_kind=ACTION_WARNING, reason="r")
    interaction = FakeInteraction(FakeUser(id=400))

    await StaffLogsCog.activity.callback(cog, interaction)

    activity, listing = sent_embeds(interaction)
    assert "Avery" in activity.description
    assert len(listing.fields) == 1


@pytest.mark.asyncio
async def test_create_reply_fits_one_message_with_long_reasons(cog, log_store) -> None:
    for i in range(30):
        await log_store.insert(long_draft(i))
    interaction = FakeInteraction(FakeUser(id=101))
    action = app_commands.Choice(name=ACTION_WARNING, value=ACTION_WARNING)

    await StaffLogsCog.create.callback(cog, interaction, "alice", action, "y" * 1000)

    embeds = sent_embeds(interaction)
    assert sum(len(e) for e in embeds) <= MAX_EMBED_TOTAL
    listing = embeds[-1]
    assert 0 < len(listing.fields) < 25
    assert listing.description.startswith(f"Showing {len(listing.fields)} of ")
