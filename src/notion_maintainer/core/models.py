"""Dataclasses for the Notion maintainer domain model."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import UTC, datetime
from typing import Any

from notion_maintainer.core import properties

# Pipeline state machine: idle → fetching → analyzing → mutating → reporting → done,
# any stage → failed (checkpoint retained)
VALID_STAGES = {"idle", "fetching", "analyzing", "mutating", "reporting", "done", "failed"}


@dataclass(frozen=True)
class CommitRecord:
    """Read snapshot of one commit page in the Notion database."""

    page_id: str
    commit_message: str = ""
    project_name: str = ""
    date: str = ""
    sha: str = ""
    archived: bool = False

    @classmethod
    def from_page(cls, page: dict[str, Any]) -> CommitRecord:
        """Build a record from a raw Notion page object."""
        props = page.get("properties", {})
        return cls(
            page_id=str(page.get("id", "")),
            commit_message=properties.rich_text(props, properties.COMMIT_MESSAGE),
            project_name=properties.title_text(props, properties.PROJECT_NAME),
            date=properties.date_start(props, properties.DATE),
            sha=properties.rich_text(props, properties.SHA),
            archived=bool(page.get("archived", False)),
        )

    @property
    def day(self) -> str:
        """Commit date truncated to its UTC calendar day (YYYY-MM-DD)."""
        if not self.date:
            return ""
        try:
            parsed = datetime.fromisoformat(self.date.replace("Z", "+00:00"))
        except ValueError:
            return self.date
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(UTC)
        return parsed.date().isoformat()

    @property
    def strong_key(self) -> str | None:
        return f"sha:{self.sha}" if self.sha else None

    @property
    def fallback_key(self) -> str:
        return f"{self.commit_message}|{self.project_name}|{self.day}"


@dataclass(frozen=True)
class ProjectRename:
    """A pending project-name rewrite for one page."""

    page_id: str
    original_name: str
    normalized_name: str


@dataclass(frozen=True)
class MutationResult:
    """Outcome of a single page mutation."""

    target_id: str
    success: bool
    error: str = ""


@dataclass
class BatchOutcome:
    """Aggregate success/failure counts for one or more batches."""

    succeeded: int = 0
    failed: int = 0
    results: list[MutationResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed

    def add(self, result: MutationResult) -> None:
        self.results.append(result)
        if result.success:
            self.succeeded += 1
        else:
            self.failed += 1

    def merge(self, other: BatchOutcome) -> None:
        for result in other.results:
            self.add(result)


_DATETIME_FIELDS = ("start_time", "last_save_time")


@dataclass
class DedupProgress:
    """Mutable pipeline state, persisted as the resume checkpoint."""

    total_pages: int = 0
    processed_pages: int = 0
    duplicates_found: int = 0
    duplicates_removed: int = 0
    errors: int = 0
    start_time: datetime | None = None
    last_save_time: datetime | None = None
    current_batch: int = 0
    total_batches: int = 0
    next_cursor: str | None = None
    current_stage: str = "idle"

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        data = asdict(self)
        for name in _DATETIME_FIELDS:
            value = data[name]
            data[name] = value.isoformat() if value is not None else None
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DedupProgress:
        """Deserialize from a dict produced by ``to_dict``.

        Unknown keys are ignored; missing keys take their defaults.

        Raises:
            TypeError, ValueError: When a field has the wrong type or an
                unparsable timestamp.
        """
        if not isinstance(data, dict):
            raise TypeError(f"Expected a mapping, got {type(data).__name__}")

        kwargs: dict[str, Any] = {}
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            if f.name in _DATETIME_FIELDS:
                kwargs[f.name] = datetime.fromisoformat(value) if value is not None else None
            elif f.name == "next_cursor":
                if value is not None and not isinstance(value, str):
                    raise TypeError("next_cursor must be a string or null")
                kwargs[f.name] = value
            elif f.name == "current_stage":
                if value not in VALID_STAGES:
                    raise ValueError(f"Invalid stage: {value!r}")
                kwargs[f.name] = value
            else:
                if isinstance(value, bool) or not isinstance(value, int):
                    raise TypeError(f"{f.name} must be an integer")
                kwargs[f.name] = value
        return cls(**kwargs)


@dataclass(frozen=True)
class MaintenanceResult:
    """Result of a bulk maintenance operation (normalize, clear)."""

    found: int
    succeeded: int = 0
    failed: int = 0
    dry_run: bool = False
