"""Conditional, paginated reads of the GitHub notifications feed.

One feed page is one conditional GET. GitHub answers 304 when nothing changed
since the If-Modified-Since date, and tells clients how long to wait before the
next poll via X-Poll-Interval. Pages chain through the Link ``rel="next"``
header; the chain is walked lazily so a failure part-way stops the walk.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime

import httpx

from reviewist_core.errors import ParseError, UnrecognizedStatusError
from reviewist_core.gh.client import transport_error
from reviewist_core.models import FeedItem, FreshPage, NotModifiedPage, PageResult, UnrecognizedPage

logger = logging.getLogger(__name__)

POLL_INTERVAL_HEADER = "X-Poll-Interval"


class PageFetcher:
    """Fetch and decode a single notifications page."""

    def __init__(self, http: httpx.AsyncClient):
        self._http = http

    async def fetch(self, url: str, cache_validator: datetime) -> PageResult:
        logger.debug("Fetching notifications %s (If-Modified-Since %s)", url, cache_validator.isoformat())
        headers = {"If-Modified-Since": http_date(cache_validator)}
        try:
            response = await self._http.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise transport_error(e, url) from e

        if response.status_code == 200:
            return _fresh_page(response)
        if response.status_code == 304:
            logger.debug("Got 304 for %s", url)
            return NotModifiedPage(wait_seconds=parse_poll_interval(response))
        return UnrecognizedPage(status=response.status_code)


async def walk_pages(fetcher: PageFetcher, start_url: str, cache_validator: datetime) -> AsyncIterator[PageResult]:
    """Yield every page of one poll cycle, following ``next`` links until the last page.

    Every request in the chain carries the same cache validator. A 304 ends the
    chain; any other non-200 status raises UnrecognizedStatusError.
    """
    url: str | None = start_url
    while url is not None:
        page = await fetcher.fetch(url, cache_validator)
        if isinstance(page, UnrecognizedPage):
            raise UnrecognizedStatusError(page.status, url)
        yield page
        if isinstance(page, NotModifiedPage):
            return
        url = page.next_page_url


def http_date(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def parse_poll_interval(response: httpx.Response) -> int | None:
    raw = response.headers.get(POLL_INTERVAL_HEADER)
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning("Ignoring non-numeric %s header: %r", POLL_INTERVAL_HEADER, raw)
        return None


def parse_last_modified(response: httpx.Response) -> datetime | None:
    raw = response.headers.get("Last-Modified")
    if raw is None:
        return None
    try:
        parsed = parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring unparseable Last-Modified header: %r", raw)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def next_page_url(response: httpx.Response) -> str | None:
    return response.links.get("next", {}).get("url")


def parse_feed_items(objects) -> list[FeedItem]:
    """Decode a page body; malformed elements are logged and skipped."""
    if not isinstance(objects, list):
        raise ParseError(f"Expected a JSON array of notifications, got {type(objects).__name__}")

    items = []
    for obj in objects:
        try:
            items.append(FeedItem.from_json(obj))
        except (KeyError, TypeError) as e:
            logger.warning("Problem parsing notification (%s: %s)", type(e).__name__, e)
    return items


def _fresh_page(response: httpx.Response) -> FreshPage:
    try:
        objects = response.json()
    except ValueError as e:
        raise ParseError(f"Notifications body is not valid JSON: {e}") from e

    return FreshPage(
        items=parse_feed_items(objects),
        next_page_url=next_page_url(response),
        cache_validator=parse_last_modified(response),
        wait_seconds=parse_poll_interval(response),
    )
