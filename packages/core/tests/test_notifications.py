"""Tests for the notifications page fetcher and pagination walker."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx
import pytest

from reviewist_core.errors import ParseError, TransportError, TransportErrorKind, UnrecognizedStatusError
from reviewist_core.gh.notifications import PageFetcher, http_date, walk_pages
from reviewist_core.models import FreshPage, NotModifiedPage, UnrecognizedPage

FEED = "https://api.github.test/notifications?all=true"
VALIDATOR = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _notification(n: int, reason="review_requested", subject_type="PullRequest"):
    return {
        "reason": reason,
        "subject": {"title": f"PR {n}", "url": f"https://api.github.test/pulls/{n}", "type": subject_type},
        "repository": {"name": "reviewist"},
    }


def _fetcher(handler) -> PageFetcher:
    return PageFetcher(httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def _page_url(n: int) -> str:
    return f"{FEED}&page={n}"


def _chain_handler(pages: list[list[dict]], seen: list[httpx.Request]):
    """Serve ``pages`` as a Link-header chain; page 1 lives at FEED."""

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        page = int(request.url.params.get("page", "1"))
        headers = {"Last-Modified": f"Tue, 0{page} Jan 2024 00:00:00 GMT", "X-Poll-Interval": str(60 * page)}
        if page < len(pages):
            headers["Link"] = f'<{_page_url(page + 1)}>; rel="next", <{_page_url(len(pages))}>; rel="last"'
        return httpx.Response(200, json=pages[page - 1], headers=headers)

    return handler


class TestPageFetcher:
    @pytest.mark.asyncio
    async def test_fresh_page_metadata(self):
        def handler(request):
            return httpx.Response(
                200,
                json=[_notification(1)],
                headers={
                    "Last-Modified": "Wed, 03 Jan 2024 10:00:00 GMT",
                    "X-Poll-Interval": "60",
                    "Link": f'<{_page_url(2)}>; rel="next"',
                },
            )

        page = await _fetcher(handler).fetch(FEED, VALIDATOR)

        assert isinstance(page, FreshPage)
        assert [i.subject_title for i in page.items] == ["PR 1"]
        assert page.next_page_url == _page_url(2)
        assert page.cache_validator == datetime(2024, 1, 3, 10, 0, 0, tzinfo=timezone.utc)
        assert page.wait_seconds == 60

    @pytest.mark.asyncio
    async def test_sends_if_modified_since(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(304)

        await _fetcher(handler).fetch(FEED, VALIDATOR)

        assert seen[0].headers["If-Modified-Since"] == "Mon, 01 Jan 2024 12:00:00 GMT"

    @pytest.mark.asyncio
    async def test_last_page_has_no_next_url(self):
        page = await _fetcher(lambda r: httpx.Response(200, json=[])).fetch(FEED, VALIDATOR)
        assert page.next_page_url is None
        assert page.cache_validator is None
        assert page.wait_seconds is None

    @pytest.mark.asyncio
    async def test_not_modified_keeps_poll_interval(self):
        page = await _fetcher(lambda r: httpx.Response(304, headers={"X-Poll-Interval": "120"})).fetch(FEED, VALIDATOR)
        assert page == NotModifiedPage(wait_seconds=120)
        assert page.items == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403, 500, 502])
    async def test_other_status_is_unrecognized(self, status):
        page = await _fetcher(lambda r: httpx.Response(status)).fetch(FEED, VALIDATOR)
        assert page == UnrecognizedPage(status=status)

    @pytest.mark.asyncio
    async def test_malformed_elements_dropped_with_warning(self, caplog):
        body = [_notification(1), {"reason": "review_requested"}, "junk", _notification(2)]

        with caplog.at_level(logging.WARNING):
            page = await _fetcher(lambda r: httpx.Response(200, json=body)).fetch(FEED, VALIDATOR)

        assert [i.subject_title for i in page.items] == ["PR 1", "PR 2"]
        assert "Problem parsing notification" in caplog.text

    @pytest.mark.asyncio
    async def test_null_fields_dropped_with_warning(self, caplog):
        null_url = _notification(3)
        null_url["subject"]["url"] = None
        null_repo = _notification(4)
        null_repo["repository"]["name"] = None
        body = [_notification(1), null_url, null_repo]

        with caplog.at_level(logging.WARNING):
            page = await _fetcher(lambda r: httpx.Response(200, json=body)).fetch(FEED, VALIDATOR)

        assert [i.subject_title for i in page.items] == ["PR 1"]
        assert caplog.text.count("Problem parsing notification") == 2

    @pytest.mark.asyncio
    async def test_non_array_body_raises_parse_error(self):
        with pytest.raises(ParseError):
            await _fetcher(lambda r: httpx.Response(200, json={"message": "hi"})).fetch(FEED, VALIDATOR)

    @pytest.mark.asyncio
    async def test_invalid_json_raises_parse_error(self):
        with pytest.raises(ParseError):
            await _fetcher(lambda r: httpx.Response(200, content=b"<html>")).fetch(FEED, VALIDATOR)

    @pytest.mark.asyncio
    async def test_non_numeric_poll_interval_ignored(self):
        page = await _fetcher(lambda r: httpx.Response(200, json=[], headers={"X-Poll-Interval": "soon"})).fetch(
            FEED, VALIDATOR
        )
        assert page.wait_seconds is None

    @pytest.mark.asyncio
    async def test_unparseable_last_modified_ignored(self):
        page = await _fetcher(lambda r: httpx.Response(200, json=[], headers={"Last-Modified": "yesterday"})).fetch(
            FEED, VALIDATOR
        )
        assert page.cache_validator is None

    @pytest.mark.asyncio
    async def test_timeout_becomes_transport_error(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(TransportError) as exc_info:
            await _fetcher(handler).fetch(FEED, VALIDATOR)
        assert exc_info.value.kind is TransportErrorKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_connect_error_becomes_connection_reset(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransportError) as exc_info:
            await _fetcher(handler).fetch(FEED, VALIDATOR)
        assert exc_info.value.kind is TransportErrorKind.CONNECTION_RESET


class TestWalkPages:
    @pytest.mark.asyncio
    async def test_concatenates_all_pages_and_stops_after_last(self):
        seen = []
        pages = [[_notification(1), _notification(2)], [_notification(3)], [_notification(4)]]
        fetcher = _fetcher(_chain_handler(pages, seen))

        results = [page async for page in walk_pages(fetcher, FEED, VALIDATOR)]

        assert len(results) == 3
        titles = [i.subject_title for page in results for i in page.items]
        assert titles == ["PR 1", "PR 2", "PR 3", "PR 4"]
        assert len(seen) == 3

    @pytest.mark.asyncio
    async def test_every_page_uses_same_validator(self):
        seen = []
        fetcher = _fetcher(_chain_handler([[_notification(1)], [_notification(2)]], seen))

        [page async for page in walk_pages(fetcher, FEED, VALIDATOR)]

        assert {r.headers["If-Modified-Since"] for r in seen} == {http_date(VALIDATOR)}

    @pytest.mark.asyncio
    async def test_not_modified_ends_walk(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(304, headers={"Link": f'<{_page_url(2)}>; rel="next"'})

        results = [page async for page in walk_pages(_fetcher(handler), FEED, VALIDATOR)]

        assert len(results) == 1
        assert isinstance(results[0], NotModifiedPage)
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_unrecognized_status_raises_mid_chain(self):
        def handler(request):
            if "page=2" in str(request.url):
                return httpx.Response(502)
            return httpx.Response(200, json=[_notification(1)], headers={"Link": f'<{_page_url(2)}>; rel="next"'})

        results = []
        with pytest.raises(UnrecognizedStatusError) as exc_info:
            async for page in walk_pages(_fetcher(handler), FEED, VALIDATOR):
                results.append(page)

        assert exc_info.value.status == 502
        assert len(results) == 1
