"""Duplicate detection over an ordered set of commit records."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from notion_maintainer.core.models import CommitRecord, DedupProgress

logger = logging.getLogger(__name__)


def find_duplicates(
    records: Iterable[CommitRecord],
    progress: DedupProgress | None = None,
    *,
    on_checkpoint: Callable[[], None] | None = None,
    checkpoint_interval: int = 100,
) -> list[CommitRecord]:
    """Return the records that repeat an earlier record, in input order.

    Records carrying a SHA are compared by SHA only; records without one are
    compared by (commit message, project name, UTC day). The first record seen
    for a key is kept and every later one is a duplicate.

    Args:
        records: Records in observation order (ascending date).
        progress: Optional state to update with ``processed_pages`` and
            ``duplicates_found`` as the pass advances.
        on_checkpoint: Called every ``checkpoint_interval`` records.
        checkpoint_interval: Records between checkpoint calls.
    """
    seen_sha: set[str] = set()
    seen_fallback: set[str] = set()
    duplicates: list[CommitRecord] = []

    processed = 0
    for record in records:
        processed += 1

        strong_key = record.strong_key
        if strong_key is not None:
            if strong_key in seen_sha:
                duplicates.append(record)
            else:
                seen_sha.add(strong_key)
        else:
            fallback_key = record.fallback_key
            if fallback_key in seen_fallback:
                duplicates.append(record)
            else:
                seen_fallback.add(fallback_key)

        if progress is not None:
            progress.processed_pages = processed
            progress.duplicates_found = len(duplicates)

        if on_checkpoint and checkpoint_interval > 0 and processed % checkpoint_interval == 0:
            on_checkpoint()
            logger.info("Analyzed %d records, found %d duplicates", processed, len(duplicates))

    logger.info("Analysis complete: %d duplicates in %d records", len(duplicates), processed)
    return duplicates
