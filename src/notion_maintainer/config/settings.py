"""Configuration via pydantic-settings with .env support."""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field, PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict

from notion_maintainer.core.exceptions import ConfigurationError


class NotionMaintainerSettings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_prefix="NOTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Credentials
    api_key: str = ""
    # Older deployments name the commit log database NOTION_COMMIT_FROM_GITHUB_LOG_ID
    database_id: str = Field(
        default="",
        validation_alias=AliasChoices("NOTION_DATABASE_ID", "NOTION_COMMIT_FROM_GITHUB_LOG_ID"),
    )

    # Notion API settings
    api_base_url: str = "https://api.notion.com/v1"
    api_version: str = "2022-06-28"
    request_timeout_seconds: float = 30.0
    page_size: int = Field(default=100, gt=0, le=100)

    # Batching & concurrency
    batch_size: PositiveInt = 50
    max_concurrent: PositiveInt = 10
    update_concurrency: PositiveInt = 3

    # Rate limiting & retry
    max_retries: int = Field(default=3, ge=0)
    initial_backoff_seconds: float = 1.0
    max_backoff_seconds: float = 30.0
    inter_page_delay_seconds: float = 0.05
    inter_group_delay_seconds: float = 0.05
    inter_batch_delay_seconds: float = 0.1
    fetch_timeout_seconds: float = 900.0

    # Checkpointing
    progress_path: Path = Path("dedup-progress.json")
    progress_save_interval: PositiveInt = 100

    # Logging
    log_level: str = "INFO"

    def require_credentials(self) -> None:
        """Fail fast when the API key or database ID is missing."""
        missing = []
        if not self.api_key:
            missing.append("NOTION_API_KEY")
        if not self.database_id:
            missing.append("NOTION_DATABASE_ID")
        if missing:
            raise ConfigurationError(
                f"Missing required environment variable(s): {', '.join(missing)}"
            )
