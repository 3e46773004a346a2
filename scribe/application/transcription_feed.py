"""In-process notification feed for newly saved transcriptions."""

from collections.abc import Callable
from typing import Final

from ..domain.entities import Transcription
from ..logging_config import get_logger

logger: Final = get_logger(__name__)

TranscriptionListener = Callable[[Transcription], None]


class TranscriptionFeed:
    """Pushes "transcription added" events to every subscriber."""

    def __init__(self) -> None:
        self._listeners: list[TranscriptionListener] = []

    def subscribe(self, listener: TranscriptionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, transcription: Transcription) -> None:
        for listener in list(self._listeners):
            try:
                listener(transcription)
            except Exception as e:
                logger.error(
                    "Transcription listener failed",
                    transcription_id=transcription.id,
                    error=str(e),
                    exc_info=True,
                )
