"""Project name normalization rules."""

from __future__ import annotations

import re

_OWNER_PREFIX = re.compile(r"^[^/]+/")


def needs_normalization(project_name: str) -> bool:
    """True for names of the form ``owner/name`` (exactly one slash)."""
    return "/" in project_name and len(project_name.split("/")) == 2


def normalize_project_name(project_name: str) -> str:
    """Strip the owner prefix: ``"FallingWithStyle/site"`` → ``"site"``."""
    return _OWNER_PREFIX.sub("", project_name)
