"""Domain-specific exceptions."""


class DomainError(Exception):
    """Base exception for domain errors."""

    pass


class ValidationError(DomainError):
    """Raised when domain validation fails."""

    pass


class TranscriptionNotFoundError(DomainError):
    """Raised when a transcription id does not exist."""

    def __init__(self, transcription_id: int):
        super().__init__(f"Transcription {transcription_id} not found")
        self.transcription_id = transcription_id


class CommitDeleteError(DomainError):
    """Raised when a permanent deletion could not be written to the store."""

    def __init__(self, transcription_id: int, reason: str):
        super().__init__(f"Failed to delete transcription {transcription_id}: {reason}")
        self.transcription_id = transcription_id
