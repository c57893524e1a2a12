"""Typed accessors and builders for Notion page properties.

Notion returns each property as a loosely-typed dict keyed by its type
(``title``, ``rich_text``, ``date``). The readers here return an
explicit default instead of raising when a property is missing, has an
unexpected shape, or is empty.
"""

from __future__ import annotations

from typing import Any

COMMIT_MESSAGE = "Commits"
PROJECT_NAME = "Project Name"
DATE = "Date"
SHA = "SHA"

MAX_TEXT_LENGTH = 2000


def _property(properties: dict[str, Any], name: str) -> dict[str, Any]:
    value = properties.get(name) if isinstance(properties, dict) else None
    return value if isinstance(value, dict) else {}


def _first_plain_text(fragments: Any) -> str:
    if not isinstance(fragments, list) or not fragments:
        return ""
    first = fragments[0]
    if not isinstance(first, dict):
        return ""
    text = first.get("plain_text")
    if isinstance(text, str):
        return text
    # Fragments echoed back from a write carry text.content instead
    content = first.get("text", {})
    if isinstance(content, dict) and isinstance(content.get("content"), str):
        return content["content"]
    return ""


def title_text(properties: dict[str, Any], name: str) -> str:
    """Plain text of the first fragment of a title property, or ""."""
    return _first_plain_text(_property(properties, name).get("title"))


def rich_text(properties: dict[str, Any], name: str) -> str:
    """Plain text of the first fragment of a rich text property, or ""."""
    return _first_plain_text(_property(properties, name).get("rich_text"))


def date_start(properties: dict[str, Any], name: str) -> str:
    """Start value of a date property as the raw ISO string, or ""."""
    date = _property(properties, name).get("date")
    if not isinstance(date, dict):
        return ""
    start = date.get("start")
    return start if isinstance(start, str) else ""


def title_property(text: str) -> dict[str, Any]:
    """Build a title property payload for a page update."""
    return {"title": [{"text": {"content": _truncate(text)}}]}


def _truncate(text: str, max_len: int = MAX_TEXT_LENGTH) -> str:
    value = text.strip()
    return value if len(value) <= max_len else f"{value[: max_len - 3]}..."
