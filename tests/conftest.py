"""Shared fixtures for Notion Maintainer tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from notion_maintainer.config.settings import NotionMaintainerSettings
from notion_maintainer.core.notion_client import NotionClient


def make_page(
    page_id: str,
    *,
    message: str | None = None,
    project: str | None = None,
    date: str | None = None,
    sha: str | None = None,
) -> dict[str, Any]:
    """Build a raw Notion page in the commit log database shape."""
    properties: dict[str, Any] = {}
    if message is not None:
        properties["Commits"] = {
            "type": "rich_text",
            "rich_text": [{"plain_text": message, "text": {"content": message}}],
        }
    if project is not None:
        properties["Project Name"] = {
            "type": "title",
            "title": [{"plain_text": project, "text": {"content": project}}],
        }
    if date is not None:
        properties["Date"] = {"type": "date", "date": {"start": date, "end": None}}
    if sha is not None:
        properties["SHA"] = {
            "type": "rich_text",
            "rich_text": [{"plain_text": sha, "text": {"content": sha}}] if sha else [],
        }
    return {"object": "page", "id": page_id, "archived": False, "properties": properties}


class FakeNotion:
    """In-memory stand-in for the Notion API behind an httpx.MockTransport.

    Serves ``pages`` through the database query endpoint in chunks of
    ``page_size`` and records every request. Page IDs in ``fail_updates``
    answer PATCH with HTTP 500; ``fail_query_after`` makes the Nth and later
    query calls fail.
    """

    def __init__(self, pages: list[dict[str, Any]] | None = None) -> None:
        self.pages = pages or []
        self.fail_updates: set[str] = set()
        self.fail_query_after: int | None = None
        self.queries: list[dict[str, Any]] = []
        self.updates: list[tuple[str, dict[str, Any]]] = []
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = json.loads(request.content) if request.content else {}

        if request.method == "POST" and request.url.path.endswith("/query"):
            self.queries.append(body)
            if self.fail_query_after is not None and len(self.queries) >= self.fail_query_after:
                return httpx.Response(502, json={"message": "bad gateway"})
            start = int(body.get("start_cursor") or 0)
            size = body.get("page_size", 100)
            chunk = self.pages[start : start + size]
            end = start + len(chunk)
            has_more = end < len(self.pages)
            return httpx.Response(
                200,
                json={
                    "object": "list",
                    "results": chunk,
                    "has_more": has_more,
                    "next_cursor": str(end) if has_more else None,
                },
            )

        if request.method == "PATCH" and "/pages/" in request.url.path:
            page_id = request.url.path.rsplit("/", 1)[-1]
            self.updates.append((page_id, body))
            if page_id in self.fail_updates:
                return httpx.Response(500, json={"message": "internal error"})
            return httpx.Response(200, json={"object": "page", "id": page_id, **body})

        return httpx.Response(404, json={"message": "not found"})

    @property
    def archived_ids(self) -> list[str]:
        return [page_id for page_id, body in self.updates if body.get("archived") is True]

    def client(self, **kwargs: Any) -> NotionClient:
        options: dict[str, Any] = {
            "max_retries": 2,
            "initial_backoff_seconds": 0.0,
            "max_backoff_seconds": 0.0,
            "inter_page_delay_seconds": 0.0,
        }
        options.update(kwargs)
        return NotionClient(
            "secret_test", transport=httpx.MockTransport(self.handler), **options
        )


@pytest.fixture
def page_factory() -> Callable[..., dict[str, Any]]:
    """Factory for raw Notion commit pages."""
    return make_page


@pytest.fixture
def fake_notion() -> FakeNotion:
    """Empty fake Notion API; tests fill in ``pages``."""
    return FakeNotion()


@pytest.fixture
def tmp_progress_path(tmp_path: Path) -> Path:
    """Temporary checkpoint file path for tests."""
    return tmp_path / "data" / "dedup-progress.json"


@pytest.fixture
def tmp_settings(tmp_progress_path: Path) -> NotionMaintainerSettings:
    """Settings with credentials, a temp checkpoint path and no delays."""
    return NotionMaintainerSettings(
        _env_file=None,
        api_key="secret_test",
        database_id="db123",
        progress_path=tmp_progress_path,
        batch_size=4,
        max_concurrent=2,
        update_concurrency=3,
        inter_page_delay_seconds=0.0,
        inter_group_delay_seconds=0.0,
        inter_batch_delay_seconds=0.0,
        initial_backoff_seconds=0.0,
        max_backoff_seconds=0.0,
        progress_save_interval=2,
    )
