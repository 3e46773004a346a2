"""Shared builders and fakes for the test suite."""

import asyncio
from datetime import UTC, datetime, timedelta

from scribe.domain.entities import Transcription, count_words
from scribe.domain.exceptions import CommitDeleteError

BASE_TIME = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def make_transcription(
    transcription_id: int,
    minutes: int = 0,
    text: str = "hello world",
    language: str = "en",
) -> Transcription:
    """Build a transcription created ``minutes`` after a fixed base time."""
    return Transcription(
        id=transcription_id,
        text=text,
        language=language,
        duration_ms=1000,
        word_count=count_words(text),
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


class FakeCommitter:
    """Stands in for the permanent delete; records calls, can fail or block."""

    def __init__(self) -> None:
        self.calls: list[int] = []
        self.completed: list[int] = []
        self.fail_ids: set[int] = set()
        self.active = 0
        self.max_active = 0
        self._gates: dict[int, asyncio.Event] = {}

    def block(self, transcription_id: int) -> asyncio.Event:
        gate = asyncio.Event()
        self._gates[transcription_id] = gate
        return gate

    async def __call__(self, transcription_id: int) -> bool:
        self.calls.append(transcription_id)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            gate = self._gates.get(transcription_id)
            if gate is not None:
                await gate.wait()
            # Let other tasks run so overlapping commits would show up
            await asyncio.sleep(0)
            if transcription_id in self.fail_ids:
                raise CommitDeleteError(transcription_id, "simulated failure")
            self.completed.append(transcription_id)
            return True
        finally:
            self.active -= 1


class RecordingView:
    """Restore handler that remembers what it received."""

    def __init__(self) -> None:
        self.restored: list[Transcription] = []

    def restore(self, transcription: Transcription) -> None:
        self.restored.append(transcription)
