"""Tests for NotionClient against an httpx.MockTransport."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from conftest import FakeNotion, make_page
from notion_maintainer.core.exceptions import NotionAPIError, RateLimitError
from notion_maintainer.core.notion_client import NotionClient, QueryPage


def _client(handler, **kwargs) -> NotionClient:
    options = {"initial_backoff_seconds": 0.0, "max_backoff_seconds": 0.0, "inter_page_delay_seconds": 0.0}
    options.update(kwargs)
    return NotionClient("secret_test", transport=httpx.MockTransport(handler), **options)


async def _collect(client: NotionClient, database_id: str, **kwargs) -> list[QueryPage]:
    pages = []
    async with client:
        async for page in client.iter_database_pages(database_id, **kwargs):
            pages.append(page)
    return pages


# ---------- query_database ----------


class TestQueryDatabase:
    """query_database() posts the query body and parses the response."""

    def test_sends_headers_and_body(self) -> None:
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"results": [], "has_more": False, "next_cursor": None})

        async def go() -> QueryPage:
            async with _client(handler) as client:
                return await client.query_database(
                    "db1",
                    start_cursor="c1",
                    page_size=50,
                    sorts=[{"property": "Date", "direction": "ascending"}],
                )

        page = asyncio.run(go())
        request = captured[0]
        assert request.method == "POST"
        assert request.url.path == "/v1/databases/db1/query"
        assert request.headers["Authorization"] == "Bearer secret_test"
        assert request.headers["Notion-Version"] == "2022-06-28"
        assert json.loads(request.content) == {
            "page_size": 50,
            "start_cursor": "c1",
            "sorts": [{"property": "Date", "direction": "ascending"}],
        }
        assert page == QueryPage(results=[], next_cursor=None, has_more=False)

    def test_omits_cursor_on_first_page(self) -> None:
        fake = FakeNotion()

        async def go() -> None:
            async with fake.client() as client:
                await client.query_database("db1")

        asyncio.run(go())
        assert "start_cursor" not in fake.queries[0]


# ---------- iter_database_pages ----------


class TestIterDatabasePages:
    """iter_database_pages() follows next_cursor until has_more is false."""

    def test_follows_cursor(self) -> None:
        fake = FakeNotion([make_page(f"p{i}") for i in range(5)])
        pages = asyncio.run(_collect(fake.client(), "db1", page_size=2))
        assert [len(p.results) for p in pages] == [2, 2, 1]
        assert [q.get("start_cursor") for q in fake.queries] == [None, "2", "4"]
        assert pages[-1].has_more is False

    def test_single_empty_page(self) -> None:
        fake = FakeNotion([])
        pages = asyncio.run(_collect(fake.client(), "db1"))
        assert len(pages) == 1
        assert pages[0].results == []

    def test_passes_filter(self) -> None:
        fake = FakeNotion([make_page("p1")])
        date_filter = {"property": "Date", "date": {"on_or_after": "2024-01-01"}}
        asyncio.run(_collect(fake.client(), "db1", filter=date_filter))
        assert fake.queries[0]["filter"] == date_filter


# ---------- update_page ----------


class TestUpdatePage:
    """update_page() and archive_page() PATCH the page."""

    def test_archive_page(self) -> None:
        fake = FakeNotion()

        async def go() -> None:
            async with fake.client() as client:
                await client.archive_page("page-1")

        asyncio.run(go())
        assert fake.updates == [("page-1", {"archived": True})]
        assert fake.requests[0].method == "PATCH"
        assert fake.requests[0].url.path == "/v1/pages/page-1"

    def test_update_properties(self) -> None:
        fake = FakeNotion()
        props = {"Project Name": {"title": [{"text": {"content": "site"}}]}}

        async def go() -> None:
            async with fake.client() as client:
                await client.update_page("page-1", properties=props)

        asyncio.run(go())
        assert fake.updates == [("page-1", {"properties": props})]


# ---------- errors and retries ----------


class TestErrors:
    """Rate limits are retried; other failures raise NotionAPIError."""

    def test_retries_429_then_succeeds(self) -> None:
        responses = [
            httpx.Response(429, json={"message": "rate limited"}),
            httpx.Response(429, json={"message": "rate limited"}),
            httpx.Response(200, json={"id": "page-1"}),
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            return responses.pop(0)

        async def go() -> dict:
            async with _client(handler, max_retries=3) as client:
                return await client.archive_page("page-1")

        assert asyncio.run(go()) == {"id": "page-1"}
        assert responses == []

    def test_raises_rate_limit_error_when_exhausted(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(429, json={"message": "rate limited"})

        async def go() -> None:
            async with _client(handler, max_retries=2) as client:
                await client.archive_page("page-1")

        with pytest.raises(RateLimitError) as exc_info:
            asyncio.run(go())
        assert exc_info.value.status_code == 429
        assert calls == 3

    def test_http_error_raises_with_message(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"message": "body failed validation"})

        async def go() -> None:
            async with _client(handler) as client:
                await client.query_database("db1")

        with pytest.raises(NotionAPIError) as exc_info:
            asyncio.run(go())
        assert exc_info.value.status_code == 400
        assert "body failed validation" in str(exc_info.value)
        assert not isinstance(exc_info.value, RateLimitError)

    def test_transport_error_wrapped(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async def go() -> None:
            async with _client(handler) as client:
                await client.query_database("db1")

        with pytest.raises(NotionAPIError, match="connection refused"):
            asyncio.run(go())
