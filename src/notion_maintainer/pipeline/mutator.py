"""Batched, concurrency-limited application of a mutation to many pages."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from operator import attrgetter
from typing import Any, Generic, TypeVar

from notion_maintainer.core.models import BatchOutcome, MutationResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


def partition(items: Sequence[T], size: int) -> list[list[T]]:
    """Split items into consecutive slices of at most ``size``."""
    if size <= 0:
        raise ValueError(f"Partition size must be positive, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class BatchedMutator(Generic[T]):
    """Apply an async mutation to targets in batches of concurrent groups.

    Batches run one after another. Within a batch, targets are split into
    groups of ``concurrency``; a group's calls run together and every outcome
    is collected before the next group starts. A failed call is logged and
    counted, never raised.
    """

    def __init__(
        self,
        *,
        batch_size: int = 50,
        concurrency: int = 10,
        group_delay_seconds: float = 0.05,
        batch_delay_seconds: float = 0.1,
        id_of: Callable[[T], str] = attrgetter("page_id"),
    ) -> None:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if concurrency <= 0:
            raise ValueError(f"concurrency must be positive, got {concurrency}")
        self._batch_size = batch_size
        self._concurrency = concurrency
        self._group_delay = group_delay_seconds
        self._batch_delay = batch_delay_seconds
        self._id_of = id_of

    def plan(self, targets: Sequence[T]) -> list[list[list[T]]]:
        """Partition targets into batches, each a list of concurrency groups."""
        return [
            partition(batch, self._concurrency)
            for batch in partition(targets, self._batch_size)
        ]

    async def run(
        self,
        targets: Sequence[T],
        mutate: Callable[[T], Awaitable[Any]],
        *,
        on_batch_complete: Callable[[int, int, BatchOutcome], None] | None = None,
    ) -> BatchOutcome:
        """Apply ``mutate`` to every target.

        Args:
            targets: Items to mutate.
            mutate: Coroutine function applied to each item.
            on_batch_complete: Called with (batch number, total batches,
                batch outcome) after each batch.

        Returns:
            Aggregate outcome across all batches.
        """
        total = BatchOutcome()
        batches = self.plan(targets)

        for batch_index, groups in enumerate(batches):
            batch_number = batch_index + 1
            batch_len = sum(len(group) for group in groups)
            logger.info(
                "Processing batch %d/%d (%d items)", batch_number, len(batches), batch_len
            )

            batch_outcome = BatchOutcome()
            for group_index, group in enumerate(groups):
                outcomes = await asyncio.gather(
                    *(mutate(target) for target in group), return_exceptions=True
                )
                for target, outcome in zip(group, outcomes):
                    batch_outcome.add(self._to_result(target, outcome))

                if group_index < len(groups) - 1 and self._group_delay > 0:
                    await asyncio.sleep(self._group_delay)

            logger.info(
                "Batch %d complete: %d succeeded, %d failed",
                batch_number, batch_outcome.succeeded, batch_outcome.failed,
            )
            total.merge(batch_outcome)
            if on_batch_complete:
                on_batch_complete(batch_number, len(batches), batch_outcome)

            if batch_index < len(batches) - 1 and self._batch_delay > 0:
                await asyncio.sleep(self._batch_delay)

        return total

    def _to_result(self, target: T, outcome: Any) -> MutationResult:
        target_id = self._id_of(target)
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                # Cancellation and interpreter exits are not per-record failures
                raise outcome
            logger.error("Failed to update page %s: %s", target_id, outcome)
            return MutationResult(target_id=target_id, success=False, error=str(outcome))
        return MutationResult(target_id=target_id, success=True)
