"""Registry of views that want to hear about restored transcriptions.

Views register a handler under a key of their choosing. Re-registering a key
replaces the previous handler, so a remounted view does not receive the same
restore twice. The registry never holds pending state; it only fans out
restorations.
"""

from collections.abc import Callable, Hashable
from typing import Final, Protocol, runtime_checkable

from ..domain.entities import Transcription
from ..logging_config import get_logger

logger: Final = get_logger(__name__)

RestoreHandler = Callable[[Transcription], None]


@runtime_checkable
class Restorable(Protocol):
    """Anything that can put a transcription back into its list."""

    def restore(self, transcription: Transcription) -> None: ...


class RestoreRegistry:
    """Maps view keys to restore handlers and broadcasts restorations."""

    def __init__(self) -> None:
        self._handlers: dict[Hashable, RestoreHandler] = {}

    def register(self, key: Hashable, handler: RestoreHandler | Restorable) -> None:
        """Register ``handler`` under ``key``, replacing any existing handler."""
        if isinstance(handler, Restorable):
            handler = handler.restore
        replaced = key in self._handlers
        self._handlers[key] = handler
        logger.debug("Restore handler registered", key=key, replaced=replaced)

    def unregister(self, key: Hashable) -> bool:
        """Remove the handler for ``key``. Returns False if none was registered."""
        removed = self._handlers.pop(key, None) is not None
        logger.debug("Restore handler unregistered", key=key, removed=removed)
        return removed

    def __contains__(self, key: object) -> bool:
        return key in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)

    def broadcast(self, transcription: Transcription) -> int:
        """Call every registered handler with ``transcription``.

        A failing handler is logged and skipped. Handlers may register or
        unregister during the broadcast; the set notified is fixed when the
        broadcast starts.

        Returns:
            Number of handlers that completed without raising
        """
        delivered = 0
        for key, handler in list(self._handlers.items()):
            try:
                handler(transcription)
            except Exception as e:
                logger.error(
                    "Restore handler failed",
                    key=key,
                    transcription_id=transcription.id,
                    error=str(e),
                    exc_info=True,
                )
            else:
                delivered += 1

        logger.debug(
            "Restore broadcast",
            transcription_id=transcription.id,
            handlers=len(self._handlers),
            delivered=delivered,
        )
        return delivered
