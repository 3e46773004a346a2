"""Pure domain entities without infrastructure dependencies."""

import re
import string
from dataclasses import dataclass
from datetime import UTC, datetime

from .constants import MAX_LANGUAGE_LENGTH, SAMPLE_RATE_HZ
from .exceptions import ValidationError

_WORD_SEPARATORS = re.compile(rf"[\s{re.escape(string.punctuation)}]+")


def count_words(text: str) -> int:
    """Count words, treating whitespace and ASCII punctuation as separators."""
    return sum(1 for part in _WORD_SEPARATORS.split(text) if part)


def duration_ms_from_samples(sample_count: int) -> int:
    """Convert a 16 kHz sample count into whole milliseconds."""
    if sample_count < 0:
        raise ValidationError("Sample count cannot be negative")
    return int(sample_count / SAMPLE_RATE_HZ * 1000)


@dataclass(frozen=True)
class Transcription:
    """A saved transcription. Immutable; views hold it as a snapshot."""

    id: int
    text: str
    language: str
    duration_ms: int
    word_count: int
    created_at: datetime

    def __post_init__(self):
        """Normalize the timestamp and validate after initialization."""
        if self.created_at.tzinfo is None:
            object.__setattr__(self, "created_at", self.created_at.replace(tzinfo=UTC))
        self.validate()

    def validate(self) -> None:
        """Validate transcription business rules."""
        if not self.language or not self.language.strip():
            raise ValidationError("Transcription language cannot be empty")

        if len(self.language) > MAX_LANGUAGE_LENGTH:
            raise ValidationError(
                f"Transcription language cannot exceed {MAX_LANGUAGE_LENGTH} "
                + "characters"
            )

        if self.duration_ms < 0:
            raise ValidationError("Transcription duration cannot be negative")

        if self.word_count < 0:
            raise ValidationError("Transcription word count cannot be negative")

    def sort_key(self) -> tuple[datetime, int]:
        """Ordering key: newer timestamp first, higher id wins ties."""
        return (self.created_at, self.id)
