"""Final run statistics."""

from __future__ import annotations

from dataclasses import dataclass

from notion_maintainer.core.models import DedupProgress


@dataclass(frozen=True)
class RunSummary:
    """Counts and timing for a completed (or failed) deduplication run."""

    total_processed: int
    duplicates_found: int
    duplicates_removed: int
    errors: int
    elapsed_seconds: float
    rate: float

    @property
    def elapsed(self) -> str:
        return format_duration(self.elapsed_seconds)

    def lines(self) -> list[str]:
        """Human-readable summary lines for terminal output."""
        return [
            f"Total pages processed: {self.total_processed:,}",
            f"Duplicates found: {self.duplicates_found:,}",
            f"Duplicates removed: {self.duplicates_removed:,}",
            f"Errors encountered: {self.errors:,}",
            f"Total time: {self.elapsed}",
            f"Processing rate: {self.rate:.1f} pages/second",
        ]


def format_duration(seconds: float) -> str:
    """Format a duration as ``1h 2m 3s``, ``2m 3s`` or ``3s``."""
    total = max(int(seconds), 0)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def summarize(progress: DedupProgress, elapsed_seconds: float) -> RunSummary:
    """Build the run summary from the final progress state."""
    rate = progress.processed_pages / elapsed_seconds if elapsed_seconds > 0 else 0.0
    return RunSummary(
        total_processed=progress.total_pages,
        duplicates_found=progress.duplicates_found,
        duplicates_removed=progress.duplicates_removed,
        errors=progress.errors,
        elapsed_seconds=elapsed_seconds,
        rate=rate,
    )
