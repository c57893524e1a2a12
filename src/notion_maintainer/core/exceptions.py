"""Custom exceptions for the Notion maintainer."""

from __future__ import annotations


class NotionMaintainerError(Exception):
    """Base exception for all Notion maintainer errors."""


class ConfigurationError(NotionMaintainerError):
    """Required configuration (API key, database ID) is missing or invalid."""


class NotionAPIError(NotionMaintainerError):
    """A Notion API request failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(NotionAPIError):
    """Notion API rate limit exceeded and retries were exhausted."""


class FetchTimeoutError(NotionMaintainerError):
    """Fetching the database did not finish within the configured timeout."""
