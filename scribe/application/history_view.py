"""Newest-first history list backed by the pending-delete store.

This is the consumer side of the undo flow: it removes a transcription from
its own list before handing it to the store, and puts it back at its ordered
position when the store broadcasts a restore.
"""

from collections.abc import Callable, Hashable, Iterable
from typing import Final

from ..constants import HISTORY_VIEW_KEY
from ..domain.entities import Transcription
from ..domain.exceptions import TranscriptionNotFoundError
from ..domain.ordering import insert_restored
from ..logging_config import get_logger
from .pending_delete import PendingDeleteStore
from .transcription_feed import TranscriptionFeed

logger: Final = get_logger(__name__)


class HistoryView:
    def __init__(
        self,
        store: PendingDeleteStore,
        feed: TranscriptionFeed | None = None,
        key: Hashable = HISTORY_VIEW_KEY,
    ) -> None:
        self.key = key
        self._store = store
        self._feed = feed
        self._items: list[Transcription] = []
        self._unsubscribe_feed: Callable[[], None] | None = None

    @property
    def items(self) -> list[Transcription]:
        return list(self._items)

    def ids(self) -> list[int]:
        return [item.id for item in self._items]

    def load(self, transcriptions: Iterable[Transcription]) -> None:
        self._items = sorted(
            transcriptions, key=Transcription.sort_key, reverse=True
        )

    def mount(self, transcriptions: Iterable[Transcription] = ()) -> None:
        """Load the list and start listening for restores and new items."""
        self.load(transcriptions)
        self._store.register_callback(self.key, self)
        if self._feed is not None and self._unsubscribe_feed is None:
            self._unsubscribe_feed = self._feed.subscribe(self.add)
        logger.debug("History view mounted", key=self.key, items=len(self._items))

    def unmount(self) -> None:
        """Stop listening. A deletion this view scheduled stays pending."""
        self._store.unregister_callback(self.key)
        if self._unsubscribe_feed is not None:
            self._unsubscribe_feed()
            self._unsubscribe_feed = None
        logger.debug("History view unmounted", key=self.key)

    def add(self, transcription: Transcription) -> None:
        """Prepend a newly created transcription."""
        if self._index_of(transcription.id) is None:
            self._items.insert(0, transcription)

    def restore(self, transcription: Transcription) -> None:
        if self._index_of(transcription.id) is not None:
            return
        index = insert_restored(self._items, transcription)
        logger.debug(
            "Transcription restored to view",
            key=self.key,
            transcription_id=transcription.id,
            index=index,
        )

    async def delete(self, transcription_id: int) -> Transcription:
        """Hide a transcription immediately and schedule its deletion."""
        index = self._index_of(transcription_id)
        if index is None:
            raise TranscriptionNotFoundError(transcription_id)
        transcription = self._items.pop(index)
        await self._store.schedule_delete(transcription)
        return transcription

    def undo(self) -> Transcription | None:
        return self._store.undo_delete()

    def _index_of(self, transcription_id: int) -> int | None:
        for index, item in enumerate(self._items):
            if item.id == transcription_id:
                return index
        return None
