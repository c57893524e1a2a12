"""JSON-file checkpoint for resumable deduplication runs."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from notion_maintainer.core.models import DedupProgress

logger = logging.getLogger(__name__)


class ProgressStore:
    """Persists a single DedupProgress snapshot to a JSON file.

    Read and write failures are logged and never raised: a bad checkpoint is
    treated as no checkpoint, and a failed save leaves the run going.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    @property
    def exists(self) -> bool:
        return self._path.exists()

    def load_existing(self) -> DedupProgress | None:
        """Return the saved checkpoint, or None if absent or unreadable."""
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            progress = DedupProgress.from_dict(data)
        except (OSError, ValueError, TypeError) as e:
            logger.warning("Could not load progress file %s: %s", self._path, e)
            return None

        logger.info(
            "Found progress file: %d/%d pages processed",
            progress.processed_pages, progress.total_pages,
        )
        return progress

    def load(self) -> DedupProgress:
        """Return the saved checkpoint, or a fresh DedupProgress."""
        return self.load_existing() or DedupProgress()

    def save(self, progress: DedupProgress) -> bool:
        """Write the checkpoint, replacing any previous one.

        Returns True on success, False if the write failed.
        """
        tmp_path = self._path.with_name(f"{self._path.name}.tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(progress.to_dict(), indent=2), encoding="utf-8")
            tmp_path.replace(self._path)
        except OSError as e:
            logger.warning("Could not save progress to %s: %s", self._path, e)
            return False
        logger.debug("Saved progress: %s", self._path)
        return True

    def clear(self) -> None:
        """Delete the checkpoint file if present."""
        try:
            self._path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not clean up progress file %s: %s", self._path, e)
            return
        logger.info("Progress file cleaned up")
