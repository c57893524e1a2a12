"""Fetch-all stage: walk every page of a database via cursor pagination."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

from notion_maintainer.core import properties
from notion_maintainer.core.exceptions import FetchTimeoutError
from notion_maintainer.core.models import CommitRecord, DedupProgress
from notion_maintainer.core.notion_client import NotionClient

logger = logging.getLogger(__name__)

DATE_ASCENDING = [{"property": properties.DATE, "direction": "ascending"}]


class RecordFetcher:
    """Accumulates every record of a database into memory.

    The fetch always starts from the first page; the cursor stored in the
    progress state is informational.
    """

    def __init__(
        self,
        client: NotionClient,
        *,
        page_size: int = 100,
        checkpoint_interval: int = 100,
        timeout_seconds: float | None = 900.0,
    ) -> None:
        self._client = client
        self._page_size = page_size
        self._checkpoint_interval = checkpoint_interval
        self._timeout = timeout_seconds

    async def fetch_all(
        self,
        database_id: str,
        progress: DedupProgress | None = None,
        *,
        on_checkpoint: Callable[[], None] | None = None,
        filter: dict[str, Any] | None = None,
        sorts: list[dict[str, Any]] | None = None,
    ) -> list[CommitRecord]:
        """Fetch all records, ascending by date unless ``sorts`` says otherwise.

        Args:
            database_id: Notion database to read.
            progress: Optional state; ``total_pages``/``processed_pages`` track
                the cumulative record count and ``next_cursor`` the last cursor.
            on_checkpoint: Called every ``checkpoint_interval`` query pages.
            filter: Optional Notion query filter.
            sorts: Optional Notion sort list.

        Raises:
            FetchTimeoutError: When the overall timeout elapses.
            NotionAPIError: When a page request fails.
        """
        records: list[CommitRecord] = []
        try:
            async with asyncio.timeout(self._timeout):
                await self._fetch_into(
                    records, database_id, progress, on_checkpoint, filter, sorts
                )
        except TimeoutError as e:
            raise FetchTimeoutError(
                f"Fetch timed out after {self._timeout}s with {len(records)} records fetched"
            ) from e

        logger.info("Fetched %d total records", len(records))
        return records

    async def _fetch_into(
        self,
        records: list[CommitRecord],
        database_id: str,
        progress: DedupProgress | None,
        on_checkpoint: Callable[[], None] | None,
        filter: dict[str, Any] | None,
        sorts: list[dict[str, Any]] | None,
    ) -> None:
        page_count = 0
        async for page in self._client.iter_database_pages(
            database_id,
            page_size=self._page_size,
            sorts=sorts or DATE_ASCENDING,
            filter=filter,
        ):
            page_count += 1
            records.extend(CommitRecord.from_page(raw) for raw in page.results)

            if progress is not None:
                progress.total_pages = len(records)
                progress.processed_pages = len(records)
                progress.next_cursor = page.next_cursor

            if (
                on_checkpoint
                and self._checkpoint_interval > 0
                and page_count % self._checkpoint_interval == 0
            ):
                on_checkpoint()
                logger.info("Fetched %d records so far", len(records))
