"""Tests for the single-slot pending-delete store."""

import asyncio

import pytest

from scribe.application.deletion_queue import DeletionQueue
from scribe.application.pending_delete import PendingDeleteStore, PendingState
from scribe.application.restore_registry import RestoreRegistry
from scribe.domain.constants import UNDO_TIMEOUT_MS
from tests.helpers import FakeCommitter, RecordingView, make_transcription


async def _wait_for_expiry(store: PendingDeleteStore) -> None:
    await asyncio.sleep(0.05)
    await store.drain()


@pytest.mark.asyncio
async def test_undo_returns_pending_item_and_broadcasts_it(
    store: PendingDeleteStore, committer: FakeCommitter
):
    """Test that undo recovers exactly the pending item.

    Covers:
    - Undo returns the scheduled item
    - Every registered view receives it
    - Nothing is sent to the deletion queue
    """
    view_a = RecordingView()
    view_b = RecordingView()
    store.register_callback("view-a", view_a)
    store.register_callback("view-b", view_b)
    transcription = make_transcription(3, minutes=2)

    await store.schedule_delete(transcription)
    assert store.state is PendingState.PENDING
    assert store.pending == transcription

    restored = store.undo_delete()

    assert restored == transcription
    assert view_a.restored == [transcription]
    assert view_b.restored == [transcription]
    assert store.state is PendingState.IDLE
    await store.drain()
    assert committer.calls == []


@pytest.mark.asyncio
async def test_undo_with_nothing_pending_returns_none(
    store: PendingDeleteStore, registry: RestoreRegistry
):
    view = RecordingView()
    registry.register("history-view", view)

    assert store.undo_delete() is None
    assert view.restored == []


@pytest.mark.asyncio
async def test_second_delete_commits_the_first(
    store: PendingDeleteStore, committer: FakeCommitter
):
    """Test superseding a pending deletion.

    Covers:
    - The earlier item is committed before the new one is admitted
    - Only the newer item stays pending
    """
    first = make_transcription(5, minutes=3)
    second = make_transcription(3, minutes=2)

    await store.schedule_delete(first)
    await store.schedule_delete(second)

    assert committer.calls == [5]
    assert store.pending == second

    await store.flush()
    assert committer.calls == [5, 3]


@pytest.mark.asyncio
async def test_superseded_item_is_committed_exactly_once(
    fast_store: PendingDeleteStore, committer: FakeCommitter
):
    """Test that the superseded item's own timer never fires a second commit."""
    await fast_store.schedule_delete(make_transcription(5))
    await fast_store.schedule_delete(make_transcription(3))

    await _wait_for_expiry(fast_store)

    assert committer.calls == [5, 3]
    assert fast_store.pending is None


@pytest.mark.asyncio
async def test_superseded_commit_failure_is_not_restored(
    store: PendingDeleteStore, committer: FakeCommitter, registry: RestoreRegistry
):
    """Test that a failed commit for a superseded item is only logged."""
    view = RecordingView()
    registry.register("history-view", view)
    committer.fail_ids.add(5)

    await store.schedule_delete(make_transcription(5))
    await store.schedule_delete(make_transcription(3))

    assert committer.calls == [5]
    assert view.restored == []
    assert store.pending is not None and store.pending.id == 3


@pytest.mark.asyncio
async def test_timeout_commits_the_pending_item(
    fast_store: PendingDeleteStore, committer: FakeCommitter
):
    """Test expiry of the undo window.

    Covers:
    - The item is committed after the grace period
    - The slot is cleared and undo is no longer possible
    """
    transcription = make_transcription(8)
    await fast_store.schedule_delete(transcription)

    await _wait_for_expiry(fast_store)

    assert committer.completed == [8]
    assert fast_store.state is PendingState.IDLE
    assert fast_store.undo_delete() is None


@pytest.mark.asyncio
async def test_failed_commit_after_timeout_restores_once(
    fast_store: PendingDeleteStore,
    committer: FakeCommitter,
    registry: RestoreRegistry,
):
    """Test compensation when the permanent delete fails.

    Covers:
    - The item is broadcast back to every registered view exactly once
    - The slot is cleared anyway
    - No retry
    """
    view_a = RecordingView()
    view_b = RecordingView()
    registry.register("view-a", view_a)
    registry.register("view-b", view_b)
    committer.fail_ids.add(3)
    transcription = make_transcription(3)

    await fast_store.schedule_delete(transcription)
    await _wait_for_expiry(fast_store)

    assert view_a.restored == [transcription]
    assert view_b.restored == [transcription]
    assert committer.calls == [3]
    assert fast_store.pending is None


@pytest.mark.asyncio
async def test_unregistered_view_is_not_notified_but_undo_still_works(
    store: PendingDeleteStore, committer: FakeCommitter
):
    """Test that a view's lifecycle does not affect the pending deletion.

    Covers:
    - Unregistering while an item is pending does not cancel it
    - The removed handler is not invoked on undo
    """
    view_a = RecordingView()
    view_b = RecordingView()
    store.register_callback("viewA", view_a)
    store.register_callback("viewB", view_b)
    transcription = make_transcription(3)

    await store.schedule_delete(transcription)
    store.unregister_callback("viewA")

    assert store.pending == transcription
    assert store.undo_delete() == transcription
    assert view_a.restored == []
    assert view_b.restored == [transcription]
    assert committer.calls == []


@pytest.mark.asyncio
async def test_concurrent_schedules_are_admitted_one_at_a_time(
    store: PendingDeleteStore, committer: FakeCommitter
):
    """Test single-flight scheduling under overlapping calls.

    Covers:
    - At most one pending item at every observed instant
    - Superseded items are committed in call order
    - The slot stays empty while a superseded commit is in flight
    """
    observed = []
    store.subscribe(observed.append)
    gate = committer.block(1)
    items = [make_transcription(i) for i in (1, 2, 3)]

    tasks = [asyncio.create_task(store.schedule_delete(item)) for item in items]
    await asyncio.sleep(0.01)

    # 1 is being committed on behalf of 2; 3 waits its turn
    assert committer.calls == [1]
    assert store.pending is None
    assert store.undo_delete() is None

    gate.set()
    await asyncio.gather(*tasks)

    assert committer.calls == [1, 2]
    assert store.pending == items[2]
    assert [t.id if t else None for t in observed] == [1, None, 2, None, 3]


@pytest.mark.asyncio
async def test_listeners_follow_the_pending_slot(store: PendingDeleteStore):
    observed = []
    unsubscribe = store.subscribe(observed.append)
    transcription = make_transcription(4)

    await store.schedule_delete(transcription)
    store.undo_delete()
    unsubscribe()
    await store.schedule_delete(make_transcription(6))

    assert observed == [transcription, None]


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_the_store(store: PendingDeleteStore):
    def broken(_pending):
        raise RuntimeError("render failed")

    store.subscribe(broken)
    transcription = make_transcription(4)

    await store.schedule_delete(transcription)

    assert store.pending == transcription
    assert store.undo_delete() == transcription


@pytest.mark.asyncio
async def test_remaining_ms_counts_down_the_undo_window(store: PendingDeleteStore):
    assert store.remaining_ms() == 0

    await store.schedule_delete(make_transcription(1))

    remaining = store.remaining_ms()
    assert 0 < remaining <= UNDO_TIMEOUT_MS
    assert store.get_pending_delete() is not None
    assert store.has_pending_delete() is True


@pytest.mark.asyncio
async def test_close_commits_what_is_still_pending(
    queue: DeletionQueue, registry: RestoreRegistry, committer: FakeCommitter
):
    store = PendingDeleteStore(queue, registry)
    await store.schedule_delete(make_transcription(9))

    await store.close()

    assert committer.completed == [9]
    assert store.pending is None


@pytest.mark.asyncio
async def test_flush_with_nothing_pending(store: PendingDeleteStore):
    assert await store.flush() is False


def test_undo_timeout_must_be_positive(committer: FakeCommitter):
    with pytest.raises(ValueError):
        PendingDeleteStore(DeletionQueue(committer), undo_timeout_ms=0)


@pytest.mark.asyncio
async def test_scheduling_the_pending_item_again_changes_nothing(
    store: PendingDeleteStore, committer: FakeCommitter
):
    """Test that a repeated delete of the pending item is ignored.

    Covers:
    - Nothing is sent to the deletion queue
    - Undo still recovers the item, which was never committed
    """
    transcription = make_transcription(7)

    assert await store.schedule_delete(transcription) is True
    assert await store.schedule_delete(transcription) is False

    assert committer.calls == []
    assert store.undo_delete() == transcription
    await store.drain()
    assert committer.calls == []


@pytest.mark.asyncio
async def test_item_being_committed_cannot_be_scheduled_again(
    fast_store: PendingDeleteStore, committer: FakeCommitter
):
    gate = committer.block(5)
    transcription = make_transcription(5)
    await fast_store.schedule_delete(transcription)
    await asyncio.sleep(0.05)
    assert committer.calls == [5]

    assert await fast_store.schedule_delete(transcription) is False
    assert fast_store.pending is None

    gate.set()
    await fast_store.drain()
    assert committer.calls == [5]
    assert fast_store.undo_delete() is None


@pytest.mark.asyncio
async def test_cancelled_schedule_still_installs_the_new_item(
    store: PendingDeleteStore, committer: FakeCommitter
):
    """Test cancelling a caller while the superseded item is being committed.

    Covers:
    - The new item still enters the undo window
    - The superseded commit runs to completion
    """
    gate = committer.block(1)
    await store.schedule_delete(make_transcription(1))
    second = make_transcription(2)

    task = asyncio.create_task(store.schedule_delete(second))
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert store.pending == second

    gate.set()
    await store.drain()
    assert committer.completed == [1]
    assert store.undo_delete() == second
