from typing import Final

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..domain.constants import HISTORY_LIMIT, MAX_HISTORY_SIZE
from ..domain.entities import Transcription, count_words, duration_ms_from_samples
from ..domain.exceptions import (
    CommitDeleteError,
    TranscriptionNotFoundError,
    ValidationError,
)
from ..infrastructure.database.models import TranscriptionRecord
from ..infrastructure.database.repositories import TranscriptionRepository
from ..logging_config import get_logger
from ..logging_utils import log_database_operation
from .deletion_queue import CommitDelete
from .transcription_feed import TranscriptionFeed

logger: Final = get_logger(__name__)


async def create_transcription_async(
    session: AsyncSession,
    text: str,
    language: str,
    sample_count: int,
    feed: TranscriptionFeed | None = None,
) -> Transcription:
    """Save a transcription, prune old history, and announce it on ``feed``."""
    if not language or not language.strip():
        raise ValidationError("Transcription language cannot be empty")

    record = TranscriptionRecord(
        text=text,
        language=language,
        duration_ms=duration_ms_from_samples(sample_count),
        word_count=count_words(text),
    )
    transcription = await TranscriptionRepository(session).add(
        record, keep_latest=MAX_HISTORY_SIZE
    )

    log_database_operation(
        operation="create",
        table="transcriptions",
        success=True,
        transcription_id=transcription.id,
    )
    logger.info(
        "Transcription saved",
        transcription_id=transcription.id,
        language=transcription.language,
        word_count=transcription.word_count,
    )

    if feed is not None:
        feed.publish(transcription)
    return transcription


async def get_history_async(
    session: AsyncSession, limit: int = HISTORY_LIMIT
) -> list[Transcription]:
    """Get the most recent transcriptions, newest first."""
    return await TranscriptionRepository(session).find_recent(limit)


async def get_transcription_async(
    session: AsyncSession, transcription_id: int
) -> Transcription:
    transcription = await TranscriptionRepository(session).find_by_id(transcription_id)
    if transcription is None:
        logger.warning("Transcription not found", transcription_id=transcription_id)
        raise TranscriptionNotFoundError(transcription_id)
    return transcription


async def delete_transcription_async(
    session: AsyncSession, transcription_id: int
) -> bool:
    """Permanently delete a transcription.

    Returns:
        True if a row was removed, False if it was already gone
    """
    deleted = await TranscriptionRepository(session).delete(transcription_id)
    log_database_operation(
        operation="delete",
        table="transcriptions",
        success=True,
        transcription_id=transcription_id,
        deleted=deleted,
    )
    return deleted


def make_commit_delete(
    session_factory: async_sessionmaker[AsyncSession],
) -> CommitDelete:
    """Build the commit function used by the deletion queue.

    Each commit runs in its own session, independent of any request.
    """

    async def commit_delete(transcription_id: int) -> bool:
        async with session_factory() as session:
            try:
                return await delete_transcription_async(session, transcription_id)
            except SQLAlchemyError as e:
                await session.rollback()
                log_database_operation(
                    operation="delete",
                    table="transcriptions",
                    success=False,
                    transcription_id=transcription_id,
                    error=str(e),
                )
                raise CommitDeleteError(transcription_id, str(e)) from e

    return commit_delete
