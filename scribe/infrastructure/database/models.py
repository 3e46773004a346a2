from datetime import UTC, datetime

from sqlmodel import Field, SQLModel

from ...domain.constants import MAX_LANGUAGE_LENGTH
from ...domain.entities import Transcription as DomainTranscription


class TranscriptionRecord(SQLModel, table=True):  # type: ignore[call-arg]
    """A saved transcription row."""

    __tablename__: str = "transcriptions"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True)
    text: str
    language: str = Field(min_length=1, max_length=MAX_LANGUAGE_LENGTH)
    duration_ms: int = Field(default=0, ge=0)
    word_count: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC), index=True)

    @classmethod
    def from_domain(cls, transcription: DomainTranscription) -> "TranscriptionRecord":
        """Convert domain entity to persistence model."""
        return cls(
            id=transcription.id,
            text=transcription.text,
            language=transcription.language,
            duration_ms=transcription.duration_ms,
            word_count=transcription.word_count,
            created_at=transcription.created_at,
        )

    def to_domain(self) -> DomainTranscription:
        """Convert persistence model to domain entity."""
        if self.id is None:
            raise ValueError("Cannot convert an unsaved transcription")
        return DomainTranscription(
            id=self.id,
            text=self.text,
            language=self.language,
            duration_ms=self.duration_ms,
            word_count=self.word_count,
            # SQLite drops tzinfo; the entity treats naive values as UTC
            created_at=self.created_at,
        )
