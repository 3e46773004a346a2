from typing import Final

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import DEFAULT_PORT
from .domain.constants import HISTORY_LIMIT, UNDO_TIMEOUT_MS


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env files."""

    # Server configuration
    debug: bool = Field(default=True, description="Enable debug mode")
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, description="Server port")

    # Database configuration
    database_url: str = Field(
        default="sqlite:///./scribe.db", description="Database connection URL"
    )
    db_name: str = Field(default="scribe", description="Database name for SQLite")

    # Application configuration
    app_name: str = Field(default="Scribe History", description="Application name")
    version: str = Field(default="0.1.0", description="Application version")

    # Undo configuration
    undo_timeout_ms: int = Field(
        default=UNDO_TIMEOUT_MS,
        ge=1,
        description="Grace period during which a deletion can be undone",
    )
    history_limit: int = Field(
        default=HISTORY_LIMIT,
        ge=1,
        description="Maximum number of transcriptions returned by the history list",
    )

    # Logging configuration
    log_to_file: bool = Field(
        default=False, description="Force logging to file even in debug mode"
    )

    # Pydantic Settings configuration
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.debug

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return not self.debug

    @computed_field  # type: ignore[prop-decorator]
    @property
    def effective_database_url(self) -> str:
        """Get the effective database URL, handling SQLite with db_name."""
        if self.database_url == "sqlite:///./scribe.db" and self.db_name != "scribe":
            return f"sqlite:///./{self.db_name}.db"
        return self.database_url

    @computed_field  # type: ignore[prop-decorator]
    @property
    def async_database_url(self) -> str:
        """Get the database URL with an async driver selected."""
        database_url = self.effective_database_url
        if database_url.startswith("sqlite:///"):
            return database_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        if database_url.startswith("postgresql://"):
            return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return database_url


# Global settings instance
settings: Final = Settings()
