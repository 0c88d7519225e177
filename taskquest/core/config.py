"""Configuration management for taskquest."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # SQLite Configuration
    sqlite_db_path: str = Field(default="./data/taskquest.db", description="Path to the SQLite database file")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="development", description="Deployment environment name")

    # Gamification Configuration
    experience_per_completion: int = Field(default=10, ge=0, description="Experience awarded per task completion")
    experience_per_level: int = Field(default=100, ge=1, description="Experience required to gain one level")
    stats_reversal_enabled: bool = Field(
        default=False,
        description="Reverse completion rewards when a completed task is uncompleted or deleted",
    )

    # Random task generation
    random_seed: int | None = Field(default=None, description="Seed for the random task generator (tests, demos)")


# Application Constants
class Constants:
    """Application-wide constants."""

    # HTTP Status Codes
    HTTP_OK: int = 200
    HTTP_NOT_FOUND: int = 404
    HTTP_UNPROCESSABLE: int = 422
    HTTP_SERVER_ERROR: int = 500

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 100  # Page size used when draining full lists

    # Random task generation
    RANDOM_TASK_MIN_MINUTES: int = 5
    RANDOM_TASK_MINUTES_SPAN: int = 60  # Estimates fall in [5, 65)


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
