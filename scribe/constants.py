"""Infrastructure and technical constants."""

from typing import Final

# Technical configuration constants
DEFAULT_PORT: Final = 8000

# Keys used for registering restore handlers
HISTORY_VIEW_KEY: Final = "history-view"
