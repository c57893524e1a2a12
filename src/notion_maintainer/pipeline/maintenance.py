"""One-off bulk maintenance operations on the commit database."""

from __future__ import annotations

import logging
from datetime import date, timedelta

from notion_maintainer.config.settings import NotionMaintainerSettings
from notion_maintainer.core import properties
from notion_maintainer.core.models import BatchOutcome, CommitRecord, MaintenanceResult, ProjectRename
from notion_maintainer.core.notion_client import NotionClient
from notion_maintainer.core.project_names import needs_normalization, normalize_project_name
from notion_maintainer.pipeline.deduplicator import build_client
from notion_maintainer.pipeline.fetcher import DATE_ASCENDING, RecordFetcher
from notion_maintainer.pipeline.mutator import BatchedMutator

logger = logging.getLogger(__name__)

DATE_DESCENDING = [{"property": properties.DATE, "direction": "descending"}]


class MaintenanceRunner:
    """Bulk rewrites and clears over the configured database.

    Writes go through the lower ``update_concurrency`` limit. Operations that
    can be previewed default to a dry run.
    """

    def __init__(
        self,
        settings: NotionMaintainerSettings | None = None,
        client: NotionClient | None = None,
    ) -> None:
        self._settings = settings or NotionMaintainerSettings()
        self._client = client

    def _ensure_client(self) -> NotionClient:
        self._settings.require_credentials()
        if self._client is None:
            self._client = build_client(self._settings)
        return self._client

    def _mutator(self) -> BatchedMutator:
        concurrency = self._settings.update_concurrency
        return BatchedMutator(
            batch_size=concurrency,
            concurrency=concurrency,
            group_delay_seconds=0.0,
            batch_delay_seconds=self._settings.inter_batch_delay_seconds,
        )

    async def normalize_project_names(self, *, execute: bool = False) -> MaintenanceResult:
        """Strip ``owner/`` prefixes from every project name.

        Args:
            execute: Apply the rewrites; otherwise only log what would change.
        """
        client = self._ensure_client()
        fetcher = RecordFetcher(
            client,
            page_size=self._settings.page_size,
            timeout_seconds=self._settings.fetch_timeout_seconds,
        )
        records = await fetcher.fetch_all(self._settings.database_id)

        renames = [
            ProjectRename(
                page_id=record.page_id,
                original_name=record.project_name,
                normalized_name=normalize_project_name(record.project_name),
            )
            for record in records
            if record.project_name and needs_normalization(record.project_name)
        ]
        logger.info("Found %d pages that need project name updates", len(renames))
        for rename in renames:
            logger.info("  %r -> %r", rename.original_name, rename.normalized_name)

        if not execute or not renames:
            return MaintenanceResult(found=len(renames), dry_run=not execute)

        outcome = await self._mutator().run(
            renames,
            lambda rename: client.update_page(
                rename.page_id,
                properties={properties.PROJECT_NAME: properties.title_property(rename.normalized_name)},
            ),
        )
        logger.info(
            "Project name update complete: %d updated, %d failed",
            outcome.succeeded, outcome.failed,
        )
        return MaintenanceResult(
            found=len(renames), succeeded=outcome.succeeded, failed=outcome.failed
        )

    async def clear_database(self, *, max_pages: int = 100) -> MaintenanceResult:
        """Archive every page, one query page at a time.

        Args:
            max_pages: Safety limit on the number of query pages processed.
        """
        return await self._archive_matching(
            sorts=DATE_ASCENDING, filter=None, execute=True, max_pages=max_pages
        )

    async def clear_recent(
        self,
        *,
        days: int = 31,
        execute: bool = False,
        max_pages: int = 50,
        today: date | None = None,
    ) -> MaintenanceResult:
        """Archive pages dated within the last ``days`` days.

        Args:
            days: Size of the window, counted back from ``today``.
            execute: Archive the pages; otherwise only count and log them.
            max_pages: Safety limit on the number of query pages processed.
            today: Reference date (defaults to the current date).
        """
        if days <= 0:
            raise ValueError(f"days must be positive, got {days}")
        cutoff = (today or date.today()) - timedelta(days=days)
        logger.info(
            "%s entries from the last %d days (since %s)",
            "Clearing" if execute else "Dry run: would clear", days, cutoff.isoformat(),
        )
        return await self._archive_matching(
            sorts=DATE_DESCENDING,
            filter={"property": properties.DATE, "date": {"on_or_after": cutoff.isoformat()}},
            execute=execute,
            max_pages=max_pages,
        )

    async def _archive_matching(
        self,
        *,
        sorts: list[dict],
        filter: dict | None,
        execute: bool,
        max_pages: int,
    ) -> MaintenanceResult:
        client = self._ensure_client()
        mutator = self._mutator()
        found = 0
        total = BatchOutcome()
        page_count = 0

        async for page in client.iter_database_pages(
            self._settings.database_id,
            page_size=self._settings.page_size,
            sorts=sorts,
            filter=filter,
        ):
            page_count += 1
            if not page.results:
                logger.info("No more pages to archive")
                break

            records = [CommitRecord.from_page(raw) for raw in page.results]
            found += len(records)
            logger.info("Query page %d: %d pages", page_count, len(records))

            if execute:
                outcome = await mutator.run(
                    records, lambda record: client.archive_page(record.page_id)
                )
                total.merge(outcome)
                logger.info("Archived %d pages so far", total.succeeded)
            else:
                for record in records:
                    logger.info(
                        "  Would archive: %s - %s (%s)",
                        record.project_name or "Unknown",
                        (record.commit_message or "No message")[:50],
                        record.date,
                    )

            if page.has_more and page_count >= max_pages:
                logger.warning(
                    "Reached maximum page limit (%d); run again to continue", max_pages
                )
                break

        return MaintenanceResult(
            found=found, succeeded=total.succeeded, failed=total.failed, dry_run=not execute
        )

    async def close(self) -> None:
        """Clean up resources."""
        if self._client is not None:
            await self._client.aclose()
