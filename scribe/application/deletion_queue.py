"""FIFO worker that commits permanent deletions one at a time.

Every submitted deletion is processed strictly after the previous one has
settled, whether that one succeeded or failed. A failure is logged and the
worker moves on to the next deletion; nothing is retried.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from contextlib import suppress
from typing import Final

from opentelemetry import trace

from ..logging_config import get_logger
from ..metrics import record_deletion_commit

logger: Final = get_logger(__name__)
tracer: Final = trace.get_tracer(__name__)

# Returns whether a row was removed; raises on failure
CommitDelete = Callable[[int], Awaitable[bool]]

_QueueEntry = tuple[int, str, "asyncio.Future[bool]"]


class DeletionQueue:
    """Serializes calls to ``commit_delete`` in submission order."""

    def __init__(self, commit_delete: CommitDelete) -> None:
        self._commit_delete = commit_delete
        self._queue: asyncio.Queue[_QueueEntry] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._unsettled = 0

    @property
    def backlog(self) -> int:
        """Number of deletions submitted but not yet settled."""
        return self._unsettled

    def submit(
        self, transcription_id: int, reason: str = "timeout"
    ) -> "asyncio.Future[bool]":
        """Queue a permanent deletion.

        Must be called from a running event loop. The returned future resolves
        to True once the deletion is committed and to False if it failed. It
        never raises for a failed deletion, and cancelling it does not stop
        the deletion from being committed.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[bool] = loop.create_future()
        self._queue.put_nowait((transcription_id, reason, future))
        self._unsettled += 1
        self._ensure_worker()
        logger.debug(
            "Deletion queued",
            transcription_id=transcription_id,
            reason=reason,
            backlog=self._unsettled,
        )
        return future

    async def join(self) -> None:
        """Wait until every submitted deletion has settled."""
        await self._queue.join()

    async def close(self) -> None:
        """Finish outstanding deletions, then stop the worker."""
        await self.join()
        if self._worker is not None:
            self._worker.cancel()
            with suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None
        logger.debug("Deletion queue closed")

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(
                self._run(), name="deletion-queue-worker"
            )

    async def _run(self) -> None:
        while True:
            transcription_id, reason, future = await self._queue.get()
            try:
                succeeded = await self._commit(transcription_id, reason)
            except asyncio.CancelledError:
                future.cancel()
                raise
            else:
                if not future.done():
                    future.set_result(succeeded)
            finally:
                self._unsettled -= 1
                self._queue.task_done()

    async def _commit(self, transcription_id: int, reason: str) -> bool:
        start_time = time.perf_counter()
        with tracer.start_as_current_span(
            "deletion_queue.commit",
            attributes={"transcription.id": transcription_id, "reason": reason},
        ) as span:
            try:
                await self._commit_delete(transcription_id)
            except Exception as e:
                span.record_exception(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                record_deletion_commit(False, time.perf_counter() - start_time, reason)
                logger.error(
                    "Deletion failed",
                    transcription_id=transcription_id,
                    reason=reason,
                    error=str(e),
                )
                return False

        record_deletion_commit(True, time.perf_counter() - start_time, reason)
        logger.info(
            "Deletion committed", transcription_id=transcription_id, reason=reason
        )
        return True
