"""Pipeline orchestrator: fetch → analyze → archive duplicates → report."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable
from datetime import UTC, datetime

from notion_maintainer.config.settings import NotionMaintainerSettings
from notion_maintainer.core.detector import find_duplicates
from notion_maintainer.core.models import BatchOutcome, CommitRecord, DedupProgress
from notion_maintainer.core.notion_client import NotionClient
from notion_maintainer.core.summary import RunSummary, summarize
from notion_maintainer.pipeline.fetcher import RecordFetcher
from notion_maintainer.pipeline.mutator import BatchedMutator
from notion_maintainer.storage.progress_store import ProgressStore

logger = logging.getLogger(__name__)


def build_client(settings: NotionMaintainerSettings) -> NotionClient:
    """Create a NotionClient from settings."""
    return NotionClient(
        settings.api_key,
        base_url=settings.api_base_url,
        notion_version=settings.api_version,
        timeout_seconds=settings.request_timeout_seconds,
        max_retries=settings.max_retries,
        initial_backoff_seconds=settings.initial_backoff_seconds,
        max_backoff_seconds=settings.max_backoff_seconds,
        inter_page_delay_seconds=settings.inter_page_delay_seconds,
    )


class Deduplicator:
    """Orchestrates the resumable deduplication pipeline.

    Stage 1 - Fetch:   Paginate every commit page, ascending by date
    Stage 2 - Analyze: Detect duplicates by SHA, falling back to message/project/day
    Stage 3 - Archive: Archive duplicates in batches of concurrent groups
    Stage 4 - Report:  Summarize counts and timing, clear the checkpoint

    The checkpoint is saved periodically, after every archive batch and on
    failure, and deleted only after a fully successful run.
    """

    def __init__(
        self,
        settings: NotionMaintainerSettings | None = None,
        client: NotionClient | None = None,
        store: ProgressStore | None = None,
        on_progress: Callable[[DedupProgress], None] | None = None,
    ) -> None:
        self._settings = settings or NotionMaintainerSettings()
        self._client = client
        self._store = store or ProgressStore(self._settings.progress_path)
        self._on_progress = on_progress
        self._progress = DedupProgress()
        self.resumed_from: DedupProgress | None = None

    @property
    def progress(self) -> DedupProgress:
        return self._progress

    @property
    def store(self) -> ProgressStore:
        return self._store

    def _ensure_client(self) -> NotionClient:
        if self._client is None:
            self._client = build_client(self._settings)
        return self._client

    async def run(self, *, resume: bool = False) -> RunSummary:
        """Run the full pipeline.

        Args:
            resume: Load a retained checkpoint and carry its counters forward.

        Returns:
            RunSummary with final counts and timing.

        Raises:
            ConfigurationError: Before any request, if credentials are missing.
            ValueError: Before any request, if batch settings are not positive.
            NotionMaintainerError: When a stage fails; the checkpoint is kept.
        """
        self._settings.require_credentials()
        mutator = self._removal_mutator()
        self._ensure_client()

        self._progress = DedupProgress()
        self.resumed_from = None
        if resume:
            saved = self._store.load_existing()
            if saved is not None:
                self.resumed_from = dataclasses.replace(saved)
                self._progress = saved
                logger.info(
                    "Resuming from previous run: %d/%d pages processed",
                    saved.processed_pages, saved.total_pages,
                )
            else:
                logger.info("No progress file found, starting fresh")

        self._progress.start_time = datetime.now(UTC)
        logger.info(
            "Starting deduplication: batch size %d, max concurrent %d",
            self._settings.batch_size, self._settings.max_concurrent,
        )

        try:
            records = await self.run_fetch()
            duplicates = self.run_analysis(records)
            await self.run_removal(duplicates, mutator)

            self._set_stage("reporting")
            summary = self.summary()
        except BaseException as e:
            # Cancellation and Ctrl-C also leave a failed checkpoint
            logger.error("Deduplication failed: %s", str(e) or type(e).__name__)
            self._set_stage("failed")
            self._checkpoint()
            logger.info("Progress saved to %s; rerun with resume to continue", self._store.path)
            raise

        self._store.clear()
        self._set_stage("done")
        return summary

    def run_sync(self, *, resume: bool = False) -> RunSummary:
        """Synchronous wrapper for run()."""
        return asyncio.run(self._run_and_close(resume))

    async def _run_and_close(self, resume: bool) -> RunSummary:
        try:
            return await self.run(resume=resume)
        finally:
            await self.close()

    async def run_fetch(self) -> list[CommitRecord]:
        """Stage 1: Fetch every record of the configured database."""
        client = self._ensure_client()
        self._set_stage("fetching")

        fetcher = RecordFetcher(
            client,
            page_size=self._settings.page_size,
            checkpoint_interval=self._settings.progress_save_interval,
            timeout_seconds=self._settings.fetch_timeout_seconds,
        )
        return await fetcher.fetch_all(
            self._settings.database_id,
            self._progress,
            on_checkpoint=self._checkpoint,
        )

    def run_analysis(self, records: list[CommitRecord]) -> list[CommitRecord]:
        """Stage 2: Classify duplicates (first record per key is kept)."""
        self._set_stage("analyzing")
        return find_duplicates(
            records,
            self._progress,
            on_checkpoint=self._checkpoint,
            checkpoint_interval=self._settings.progress_save_interval,
        )

    async def run_removal(
        self,
        duplicates: list[CommitRecord],
        mutator: BatchedMutator[CommitRecord] | None = None,
    ) -> BatchOutcome:
        """Stage 3: Archive duplicates in batches, checkpointing after each."""
        client = self._ensure_client()
        if mutator is None:
            mutator = self._removal_mutator()
        self._set_stage("mutating")
        self._progress.current_batch = 0
        self._progress.total_batches = len(mutator.plan(duplicates))

        if not duplicates:
            logger.info("No duplicates to remove")
            return BatchOutcome()

        logger.info("Removing %d duplicates", len(duplicates))
        return await mutator.run(
            duplicates,
            lambda record: client.archive_page(record.page_id),
            on_batch_complete=self._on_batch_complete,
        )

    def _removal_mutator(self) -> BatchedMutator[CommitRecord]:
        return BatchedMutator(
            batch_size=self._settings.batch_size,
            concurrency=self._settings.max_concurrent,
            group_delay_seconds=self._settings.inter_group_delay_seconds,
            batch_delay_seconds=self._settings.inter_batch_delay_seconds,
        )

    def _on_batch_complete(self, batch_number: int, total_batches: int, outcome: BatchOutcome) -> None:
        self._progress.current_batch = batch_number
        self._progress.total_batches = total_batches
        self._progress.duplicates_removed += outcome.succeeded
        self._progress.errors += outcome.failed
        self._checkpoint()

    def summary(self) -> RunSummary:
        """Summarize the current progress; also valid after a failed run."""
        return summarize(self._progress, self._elapsed_seconds())

    async def close(self) -> None:
        """Clean up resources."""
        if self._client is not None:
            await self._client.aclose()

    def _elapsed_seconds(self) -> float:
        if self._progress.start_time is None:
            return 0.0
        return (datetime.now(UTC) - self._progress.start_time).total_seconds()

    def _checkpoint(self) -> None:
        self._progress.last_save_time = datetime.now(UTC)
        self._store.save(self._progress)
        self._notify()

    def _set_stage(self, stage: str) -> None:
        self._progress.current_stage = stage
        self._notify()

    def _notify(self) -> None:
        """Send progress update to callback if registered."""
        if self._on_progress:
            self._on_progress(self._progress)
