"""Single-slot store for the deletion that can still be undone.

A deletion enters the slot when scheduled and leaves it in one of three ways:

- undo: the timer is cancelled and the transcription is broadcast back to
  every registered view. Nothing is sent to the deletion queue.
- timeout: the slot is cleared and the transcription is committed through the
  deletion queue. If the commit fails, it is broadcast back instead.
- supersede: scheduling another deletion commits the current one first, and
  only then installs the new one.

Scheduling is single-flight: concurrent ``schedule_delete`` calls are admitted
one at a time, in call order. Scheduling a transcription that is already
pending, or whose commit is in flight, changes nothing.
"""

import asyncio
from collections.abc import Callable, Hashable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Final

from ..domain.constants import UNDO_TIMEOUT_MS
from ..domain.entities import Transcription
from ..logging_config import get_logger
from ..metrics import (
    record_deletion_scheduled,
    record_deletion_undone,
    record_pending_changed,
    record_restore_broadcast,
)
from .deletion_queue import DeletionQueue
from .restore_registry import Restorable, RestoreHandler, RestoreRegistry

logger: Final = get_logger(__name__)

PendingListener = Callable[[Transcription | None], None]


class PendingState(StrEnum):
    IDLE = "idle"
    PENDING = "pending"


@dataclass
class PendingDeletion:
    """The transcription inside the undo window and its expiry timer."""

    transcription: Transcription
    timer: asyncio.TimerHandle
    generation: int
    scheduled_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def deadline(self) -> float:
        """Event loop time at which the timer fires."""
        return self.timer.when()

    def remaining_ms(self, now: float) -> int:
        return max(0, round((self.deadline - now) * 1000))


class PendingDeleteStore:
    """Owns the one pending deletion and coordinates undo and commit."""

    def __init__(
        self,
        queue: DeletionQueue,
        registry: RestoreRegistry | None = None,
        undo_timeout_ms: int = UNDO_TIMEOUT_MS,
    ) -> None:
        if undo_timeout_ms <= 0:
            raise ValueError("undo_timeout_ms must be positive")
        self._queue = queue
        self._registry = registry if registry is not None else RestoreRegistry()
        self._undo_timeout_ms = undo_timeout_ms
        self._pending: PendingDeletion | None = None
        self._generation = 0
        self._lock = asyncio.Lock()
        self._listeners: list[PendingListener] = []
        self._expiry_tasks: set[asyncio.Task[None]] = set()
        self._committing: set[int] = set()

    @property
    def undo_timeout_ms(self) -> int:
        return self._undo_timeout_ms

    @property
    def registry(self) -> RestoreRegistry:
        return self._registry

    @property
    def state(self) -> PendingState:
        return PendingState.IDLE if self._pending is None else PendingState.PENDING

    @property
    def pending(self) -> Transcription | None:
        """The transcription that can currently be undone, if any."""
        return self._pending.transcription if self._pending else None

    def has_pending_delete(self) -> bool:
        return self._pending is not None

    def get_pending_delete(self) -> PendingDeletion | None:
        return self._pending

    def remaining_ms(self) -> int:
        """Milliseconds left in the undo window, or 0 when nothing is pending."""
        if self._pending is None:
            return 0
        return self._pending.remaining_ms(asyncio.get_running_loop().time())

    def register_callback(
        self, key: Hashable, handler: RestoreHandler | Restorable
    ) -> None:
        self._registry.register(key, handler)

    def unregister_callback(self, key: Hashable) -> bool:
        # The pending deletion outlives the view that scheduled it
        return self._registry.unregister(key)

    def subscribe(self, listener: PendingListener) -> Callable[[], None]:
        """Call ``listener`` with the pending transcription after every change.

        Returns:
            A function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def schedule_delete(self, transcription: Transcription) -> bool:
        """Put ``transcription`` in the undo window.

        A deletion that is already pending is committed first; the new one is
        installed only after that commit has settled, or once the wait for it
        is cancelled. The caller is expected to have removed the transcription
        from its own list already.

        Returns:
            False if the transcription is already pending or being committed,
            in which case nothing changes
        """
        async with self._lock:
            if self._is_deleting(transcription.id):
                logger.info(
                    "Deletion already in progress", transcription_id=transcription.id
                )
                return False

            previous = self._take_pending()
            try:
                if previous is not None:
                    await self._finalize_superseded(
                        previous.transcription, transcription
                    )
            finally:
                self._install(transcription)
                record_deletion_scheduled(superseded=previous is not None)

            logger.info(
                "Deletion scheduled",
                transcription_id=transcription.id,
                undo_timeout_ms=self._undo_timeout_ms,
            )
            return True

    def undo_delete(self) -> Transcription | None:
        """Recover the pending transcription and broadcast it to all views.

        Returns:
            The recovered transcription, or None if nothing is pending
        """
        pending = self._take_pending()
        if pending is None:
            logger.debug("Undo requested with nothing pending")
            return None

        restored = pending.transcription
        record_deletion_undone()
        logger.info("Deletion undone", transcription_id=restored.id)
        self._broadcast_restore(restored, reason="undo")
        return restored

    async def flush(self) -> bool:
        """Commit the pending deletion now instead of waiting for its timer.

        Returns:
            True if a deletion was pending
        """
        pending = self._take_pending()
        if pending is None:
            return False
        transcription = pending.transcription
        await self._settle(transcription, self._submit(transcription.id, "flush"))
        return True

    async def drain(self) -> None:
        """Wait for expired deletions and queued commits to settle."""
        while self._expiry_tasks:
            await asyncio.gather(*self._expiry_tasks)
        await self._queue.join()

    async def close(self) -> None:
        """Commit anything still pending and stop the deletion queue."""
        async with self._lock:
            flushed = await self.flush()
        await self.drain()
        await self._queue.close()
        logger.info("Pending delete store closed", flushed=flushed)

    def _is_deleting(self, transcription_id: int) -> bool:
        pending = self.pending
        if pending is not None and pending.id == transcription_id:
            return True
        return transcription_id in self._committing

    def _submit(self, transcription_id: int, reason: str) -> "asyncio.Future[bool]":
        future = self._queue.submit(transcription_id, reason=reason)
        self._committing.add(transcription_id)
        future.add_done_callback(
            lambda _: self._committing.discard(transcription_id)
        )
        return future

    async def _finalize_superseded(
        self, superseded: Transcription, transcription: Transcription
    ) -> None:
        logger.info(
            "Finalizing superseded deletion",
            transcription_id=superseded.id,
            next_transcription_id=transcription.id,
        )
        committed = await asyncio.shield(self._submit(superseded.id, "superseded"))
        if not committed:
            # Already gone from view and the user has moved on
            logger.warning(
                "Superseded deletion was not committed",
                transcription_id=superseded.id,
            )

    def _install(self, transcription: Transcription) -> None:
        self._generation += 1
        loop = asyncio.get_running_loop()
        timer = loop.call_later(
            self._undo_timeout_ms / 1000, self._on_timeout, self._generation
        )
        self._set_pending(
            PendingDeletion(
                transcription=transcription, timer=timer, generation=self._generation
            )
        )

    def _take_pending(self) -> PendingDeletion | None:
        pending = self._pending
        if pending is not None:
            pending.timer.cancel()
            self._set_pending(None)
        return pending

    def _set_pending(self, pending: PendingDeletion | None) -> None:
        was_pending = self._pending is not None
        self._pending = pending
        if was_pending != (pending is not None):
            record_pending_changed(1 if pending is not None else -1)
        self._notify_listeners()

    def _notify_listeners(self) -> None:
        current = self.pending
        for listener in list(self._listeners):
            try:
                listener(current)
            except Exception as e:
                logger.error("Pending listener failed", error=str(e), exc_info=True)

    def _on_timeout(self, generation: int) -> None:
        pending = self._pending
        if pending is None or pending.generation != generation:
            return

        # Clear before committing so the item can no longer be undone
        self._set_pending(None)
        logger.debug("Undo window expired", transcription_id=pending.transcription.id)
        transcription = pending.transcription
        future = self._submit(transcription.id, "timeout")
        task = asyncio.create_task(self._settle(transcription, future))
        self._expiry_tasks.add(task)
        task.add_done_callback(self._expiry_tasks.discard)

    async def _settle(
        self, transcription: Transcription, future: "asyncio.Future[bool]"
    ) -> None:
        if await asyncio.shield(future):
            return

        # The views already dropped it, so put it back rather than lose it
        logger.error(
            "Deletion failed after undo window, restoring",
            transcription_id=transcription.id,
        )
        self._broadcast_restore(transcription, reason="commit_failed")

    def _broadcast_restore(self, transcription: Transcription, reason: str) -> None:
        delivered = self._registry.broadcast(transcription)
        record_restore_broadcast(delivered, reason)
