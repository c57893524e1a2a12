"""Async Notion API client for querying databases and updating pages."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import Any

import httpx

from notion_maintainer.core.exceptions import NotionAPIError, RateLimitError

logger = logging.getLogger(__name__)

NOTION_API_BASE_URL = "https://api.notion.com/v1"
NOTION_VERSION = "2022-06-28"


@dataclass(frozen=True)
class QueryPage:
    """One page of results from a database query."""

    results: list[dict[str, Any]] = field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False


def _error_message(response: httpx.Response) -> str:
    """Extract Notion's error message from a failed response."""
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.text


class NotionClient:
    """Thin async wrapper around the Notion REST API."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = NOTION_API_BASE_URL,
        notion_version: str = NOTION_VERSION,
        timeout_seconds: float = 30.0,
        max_retries: int = 3,
        initial_backoff_seconds: float = 1.0,
        max_backoff_seconds: float = 30.0,
        inter_page_delay_seconds: float = 0.05,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._max_retries = max_retries
        self._initial_backoff = initial_backoff_seconds
        self._max_backoff = max_backoff_seconds
        self._inter_page_delay = inter_page_delay_seconds
        self._http = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Notion-Version": notion_version,
                "Content-Type": "application/json",
            },
            timeout=timeout_seconds,
            transport=transport,
        )

    async def __aenter__(self) -> NotionClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()

    async def _request_with_retry(
        self, method: str, path: str, payload: dict[str, Any], context: str
    ) -> dict[str, Any]:
        """Send a request with exponential backoff on 429 responses.

        Args:
            method: HTTP method.
            path: Path relative to the API base URL.
            payload: JSON body.
            context: Description for log messages (e.g. "query database").

        Returns:
            The decoded JSON response.

        Raises:
            RateLimitError: When retries are exhausted on 429 responses.
            NotionAPIError: On any other HTTP or transport error.
        """
        backoff = self._initial_backoff

        for attempt in range(self._max_retries + 1):
            try:
                response = await self._http.request(method, path, json=payload)
            except httpx.TransportError as e:
                raise NotionAPIError(f"Failed to {context}: {e}") from e

            if response.status_code == 429:
                if attempt >= self._max_retries:
                    raise RateLimitError(
                        f"Rate limited during {context} after {self._max_retries} retries",
                        status_code=429,
                    )
                sleep_time = min(backoff, self._max_backoff)
                jitter = random.uniform(0, sleep_time)
                logger.warning(
                    "Rate limited during %s (attempt %d/%d), sleeping %.2fs",
                    context, attempt + 1, self._max_retries, jitter,
                )
                await asyncio.sleep(jitter)
                backoff = min(backoff * 2, self._max_backoff)
                continue

            if response.is_error:
                raise NotionAPIError(
                    f"Failed to {context}: HTTP {response.status_code} {_error_message(response)}",
                    status_code=response.status_code,
                )
            return response.json()

        # Should not be reached, but just in case
        raise RateLimitError(f"Rate limited during {context} after {self._max_retries} retries")

    async def query_database(
        self,
        database_id: str,
        *,
        start_cursor: str | None = None,
        page_size: int = 100,
        sorts: list[dict[str, Any]] | None = None,
        filter: dict[str, Any] | None = None,
    ) -> QueryPage:
        """Query one page of a database."""
        payload: dict[str, Any] = {"page_size": page_size}
        if start_cursor:
            payload["start_cursor"] = start_cursor
        if sorts:
            payload["sorts"] = sorts
        if filter:
            payload["filter"] = filter

        body = await self._request_with_retry(
            "POST", f"/databases/{database_id}/query", payload, "query database"
        )
        return QueryPage(
            results=body.get("results", []),
            next_cursor=body.get("next_cursor"),
            has_more=bool(body.get("has_more", False)),
        )

    async def iter_database_pages(
        self,
        database_id: str,
        *,
        page_size: int = 100,
        sorts: list[dict[str, Any]] | None = None,
        filter: dict[str, Any] | None = None,
    ) -> AsyncGenerator[QueryPage, None]:
        """Follow the query cursor, yielding each page of results.

        This is a generator: consumers control the pace of pagination and can
        stop early. A delay is inserted between page requests.
        """
        cursor: str | None = None
        first_page = True

        while True:
            if not first_page and self._inter_page_delay > 0:
                await asyncio.sleep(self._inter_page_delay)
            first_page = False

            page = await self.query_database(
                database_id,
                start_cursor=cursor,
                page_size=page_size,
                sorts=sorts,
                filter=filter,
            )
            logger.debug("Queried %d pages (has_more=%s)", len(page.results), page.has_more)
            yield page

            if not page.has_more or not page.next_cursor:
                return
            cursor = page.next_cursor

    async def update_page(
        self,
        page_id: str,
        *,
        archived: bool | None = None,
        properties: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Update a page's archived flag and/or properties."""
        payload: dict[str, Any] = {}
        if archived is not None:
            payload["archived"] = archived
        if properties:
            payload["properties"] = properties
        return await self._request_with_retry(
            "PATCH", f"/pages/{page_id}", payload, f"update page {page_id}"
        )

    async def archive_page(self, page_id: str) -> dict[str, Any]:
        """Archive (soft-delete) a page."""
        return await self.update_page(page_id, archived=True)
