"""Infrastructure layer - Repository implementations."""

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from ...domain.entities import Transcription
from .models import TranscriptionRecord


class TranscriptionRepository:
    """Repository for transcription persistence operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, record: TranscriptionRecord, keep_latest: int) -> Transcription:
        """Insert a transcription and prune the history in one transaction."""
        self.session.add(record)
        await self.session.flush()

        newest = (
            select(TranscriptionRecord.id)
            .order_by(
                col(TranscriptionRecord.created_at).desc(),
                col(TranscriptionRecord.id).desc(),
            )
            .limit(keep_latest)
        )
        await self.session.execute(
            delete(TranscriptionRecord).where(
                col(TranscriptionRecord.id).not_in(newest)
            )
        )
        await self.session.commit()
        await self.session.refresh(record)
        return record.to_domain()

    async def find_by_id(self, transcription_id: int) -> Transcription | None:
        record = await self.session.get(TranscriptionRecord, transcription_id)
        return record.to_domain() if record else None

    async def find_recent(self, limit: int) -> list[Transcription]:
        """Get the newest transcriptions, newest first."""
        statement = (
            select(TranscriptionRecord)
            .order_by(
                col(TranscriptionRecord.created_at).desc(),
                col(TranscriptionRecord.id).desc(),
            )
            .limit(limit)
        )
        result = await self.session.execute(statement)
        return [record.to_domain() for record in result.scalars().all()]

    async def delete(self, transcription_id: int) -> bool:
        """Delete a transcription by ID. Returns False if it did not exist."""
        result = await self.session.execute(
            delete(TranscriptionRecord).where(
                col(TranscriptionRecord.id) == transcription_id
            )
        )
        await self.session.commit()
        return bool(result.rowcount)  # type: ignore[attr-defined]
