"""Reinsertion of restored transcriptions into newest-first lists."""

from collections.abc import MutableSequence, Sequence

from .entities import Transcription


def find_restore_index(items: Sequence[Transcription], target: Transcription) -> int:
    """Return the index at which ``target`` belongs in a newest-first list.

    ``items`` must be sorted descending by ``(created_at, id)``. The result is
    the first position whose element sorts strictly below ``target``, or
    ``len(items)`` when every element sorts above it. Items created in another
    process are compared on their own clock; no skew correction is applied.
    """
    target_key = target.sort_key()
    for index, item in enumerate(items):
        if item.sort_key() < target_key:
            return index
    return len(items)


def insert_restored(
    items: MutableSequence[Transcription], target: Transcription
) -> int:
    """Insert ``target`` at its ordered position and return that index."""
    index = find_restore_index(items, target)
    items.insert(index, target)
    return index
