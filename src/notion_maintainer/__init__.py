"""Notion Maintainer - Deduplicate and bulk-maintain a Notion commit log database."""

from notion_maintainer.core.models import (
    BatchOutcome,
    CommitRecord,
    DedupProgress,
    MaintenanceResult,
    MutationResult,
    ProjectRename,
)
from notion_maintainer.pipeline.deduplicator import Deduplicator
from notion_maintainer.pipeline.maintenance import MaintenanceRunner

__all__ = [
    "BatchOutcome",
    "CommitRecord",
    "DedupProgress",
    "Deduplicator",
    "MaintenanceResult",
    "MaintenanceRunner",
    "MutationResult",
    "ProjectRename",
]
