"""Resolve review-request notifications into full pull requests."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

import httpx

from reviewist_core.errors import ParseError, ReviewistError, UnrecognizedStatusError
from reviewist_core.gh.client import transport_error
from reviewist_core.models import CycleEvent, ResolvedItem, ReviewItem, ReviewRequestEvent
from reviewist_core.utils.logs import cycle_logger

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 10


class DetailResolver:
    """Fetches pull request details with at most ``concurrency`` requests in flight."""

    def __init__(self, http: httpx.AsyncClient, concurrency: int = DEFAULT_CONCURRENCY):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._http = http
        self.concurrency = concurrency

    async def resolve(self, event: ReviewRequestEvent) -> ReviewItem:
        try:
            response = await self._http.get(event.detail_url)
        except httpx.HTTPError as e:
            raise transport_error(e, event.detail_url) from e

        if not response.is_success:
            raise UnrecognizedStatusError(response.status_code, event.detail_url)

        try:
            return ReviewItem.from_json(response.json())
        except (ValueError, KeyError, TypeError) as e:
            raise ParseError(f"Could not parse pull request at {event.detail_url}: {e}") from e

    async def resolve_unordered(self, events: AsyncIterator[CycleEvent]) -> AsyncIterator[ResolvedItem]:
        """Resolve events concurrently, yielding pull requests as they complete.

        Output order follows completion, not submission. Failed lookups are
        logged and dropped. The next upstream event is requested while
        lookups are still running, so polling is never blocked on them.
        """
        upstream = aiter(events)
        pending: set[asyncio.Task] = set()
        pull: asyncio.Task | None = None
        exhausted = False

        try:
            while True:
                if pull is None and not exhausted and len(pending) < self.concurrency:
                    pull = asyncio.create_task(_next_or_none(upstream))

                waiting = pending | ({pull} if pull is not None else set())
                if not waiting:
                    return

                done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)

                if pull is not None and pull in done:
                    tagged = pull.result()
                    pull = None
                    if tagged is None:
                        exhausted = True
                    else:
                        pending.add(asyncio.create_task(self._resolve_or_none(tagged)))

                for task in done & pending:
                    pending.discard(task)
                    resolved = task.result()
                    if resolved is not None:
                        yield resolved
        finally:
            leftovers = pending | ({pull} if pull is not None else set())
            for task in leftovers:
                task.cancel()
            if leftovers:
                await asyncio.gather(*leftovers, return_exceptions=True)
            if hasattr(upstream, "aclose"):
                await upstream.aclose()

    async def _resolve_or_none(self, tagged: CycleEvent) -> ResolvedItem | None:
        try:
            item = await self.resolve(tagged.event)
        except ReviewistError as e:
            cycle_logger(logger, tagged.cycle).warning("Problem getting pull request: %s", e)
            return None
        return ResolvedItem(item=item, cycle=tagged.cycle)


async def _next_or_none(iterator):
    try:
        return await anext(iterator)
    except StopAsyncIteration:
        return None
