"""Tests for moderation log storage, ordering and transitions."""

from __future__ import annotations

import asyncio

import pytest

from clearwater.constants import ACTION_ACTIVE_BAN_BOLO, ACTION_BAN, ACTION_NOTE, ACTION_WARNING, AUTOMATION_AUTHOR
from clearwater.models import CompletionResult, DeletionResult, LogDraft
from clearwater.services.log_store import LogListing
from clearwater.testing.fakes import principal


def staff_draft(target: str = "alice", reason: str = "r", kind: str = ACTION_WARNING, author: str = "100") -> LogDraft:
    return LogDraft.by_staff(principal(author), target_name=target, action_kind=kind, reason=reason)


def bolo_draft(target: str = "alice") -> LogDraft:
    return LogDraft(
        author_id=None,
        author_name=AUTOMATION_AUTHOR,
        target_name=target,
        action_kind=ACTION_ACTIVE_BAN_BOLO,
        reason="Reached 3 previous punishments",
        prior_offense_count=3,
        pinned=True,
    )


@pytest.mark.asyncio
async def test_insert_assigns_ids_and_timestamps(log_store) -> None:
    first = await log_store.insert(staff_draft(reason="one"))
    second = await log_store.insert(staff_draft(reason="two"))

    assert second.id > first.id
    assert second.created_at > first.created_at
    assert first.pinned is False
    assert first.completed is False and first.completed_at is None

    stored = await log_store.get(first.id)
    assert stored == first


@pytest.mark.asyncio
async def test_ids_are_not_reused_after_delete(log_store) -> None:
    await log_store.insert(staff_draft())
    last = await log_store.insert(staff_draft())
    assert await log_store.delete_by_id(last.id) is DeletionResult.DELETED

    fresh = await log_store.insert(staff_draft())
    assert fresh.id > last.id


@pytest.mark.asyncio
async def test_list_puts_pinned_first_then_newest(log_store) -> None:
    a = await log_store.insert(staff_draft(reason="a"))
    bolo = await log_store.insert(bolo_draft())
    c = await log_store.insert(staff_draft(reason="c"))

    entries = await log_store.list().fetch()
    assert [e.id for e in entries] == [bolo.id, c.id, a.id]


@pytest.mark.asyncio
async def test_listing_is_restartable_and_limited(log_store) -> None:
    for i in range(3):
        await log_store.insert(staff_draft(reason=f"r{i}"))

    listing = log_store.list(limit=2)
    first = [e.reason async for e in listing]
    assert first == ["r2", "r1"]

    await log_store.insert(staff_draft(reason="r3"))
    assert [e.reason for e in await listing.fetch()] == ["r3", "r2"]


@pytest.mark.asyncio
async def test_listing_pages_keep_order_across_pinned_boundary(log_store) -> None:
    ids = []
    for i in range(5):
        draft = bolo_draft() if i in (1, 3) else staff_draft(reason=f"r{i}")
        ids.append((await log_store.insert(draft)).id)

    listing = LogListing(log_store, page_size=2)
    entries = await listing.fetch()

    assert [e.id for e in entries] == [ids[3], ids[1], ids[4], ids[2], ids[0]]
    assert [e.pinned for e in entries] == [True, True, False, False, False]


@pytest.mark.asyncio
async def test_count_by_target_name_ignores_case_and_automation(log_store) -> None:
    await log_store.insert(staff_draft(target="Alice"))
    await log_store.insert(staff_draft(target="  aLiCe "))
    await log_store.insert(staff_draft(target="bob"))
    await log_store.insert(bolo_draft(target="alice"))

    assert await log_store.count_by_target_name("ALICE") == 2
    assert await log_store.count_by_target_name("alice", exclude_automation=False) == 3
    assert await log_store.count_by_target_name("alic") == 0


@pytest.mark.asyncio
async def test_complete_rejects_non_bolo_entries(log_store) -> None:
    note = await log_store.insert(staff_draft(kind=ACTION_NOTE))

    result = await log_store.complete(note.id, principal("100"))

    assert result is CompletionResult.INVALID_TRANSITION
    assert await log_store.get(note.id) == note


@pytest.mark.asyncio
async def test_complete_converts_bolo_to_ban_once(log_store) -> None:
    bolo = await log_store.insert(bolo_draft())
    completer = principal("200", "Hannah")

    assert await log_store.complete(bolo.id, completer) is CompletionResult.COMPLETED
    done = await log_store.get(bolo.id)
    assert done.action_kind == ACTION_BAN
    assert done.completed is True
    assert done.pinned is False
    assert done.completed_by == "Hannah"
    assert done.completed_by_id == "200"
    assert done.completed_at is not None
    assert done.prior_offense_count == bolo.prior_offense_count

    assert await log_store.complete(bolo.id, completer) is CompletionResult.INVALID_TRANSITION
    assert await log_store.get(bolo.id) == done


@pytest.mark.asyncio
async def test_complete_missing_entry(log_store) -> None:
    assert await log_store.complete(999, principal("100")) is CompletionResult.ENTRY_NOT_FOUND


@pytest.mark.asyncio
async def test_concurrent_completions_only_one_succeeds(log_store) -> None:
    bolo = await log_store.insert(bolo_draft())

    results = await asyncio.gather(
        log_store.complete(bolo.id, principal("100")),
        log_store.complete(bolo.id, principal("101")),
    )

    assert sorted(r.value for r in results) == ["completed", "invalid_transition"]


@pytest.mark.asyncio
async def test_delete_removes_exactly_one_entry(log_store) -> None:
    keep_a = await log_store.insert(staff_draft(reason="a"))
    doomed = await log_store.insert(staff_draft(reason="b"))
    keep_c = await log_store.insert(staff_draft(reason="c"))

    assert await log_store.delete_by_id(doomed.id) is DeletionResult.DELETED
    assert await log_store.delete_by_id(doomed.id) is DeletionResult.ENTRY_NOT_FOUND
    assert await log_store.delete_by_id(12345) is DeletionResult.ENTRY_NOT_FOUND

    assert [e.id for e in await log_store.list().fetch()] == [keep_c.id, keep_a.id]


@pytest.mark.asyncio
async def test_session_rolls_back_on_error(log_store) -> None:
    with pytest.raises(RuntimeError):
        async with log_store.session() as session:
            await session.insert(staff_draft())
            raise RuntimeError("boom")

    assert await log_store.list().fetch() == []


@pytest.mark.asyncio
async def test_cancelled_session_leaves_no_entry(log_store) -> None:
    inserted = asyncio.Event()

    async def writer() -> None:
        async with log_store.session() as session:
            await session.insert(staff_draft())
            inserted.set()
            await asyncio.Event().wait()

    task = asyncio.create_task(writer())
    await inserted.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert await log_store.list().fetch() == []
