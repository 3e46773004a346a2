"""Domain business rules and constants."""

from typing import Final

# Undo window for a pending deletion
UNDO_TIMEOUT_MS: Final = 5000

# History retention
MAX_HISTORY_SIZE: Final = 50
HISTORY_LIMIT: Final = 50

# Audio captured for transcription is resampled to 16 kHz
SAMPLE_RATE_HZ: Final = 16000

MAX_LANGUAGE_LENGTH: Final = 16
