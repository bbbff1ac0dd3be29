"""One poll cycle: honour the requested wait, walk the feed, retry on failure."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar
from urllib.parse import urljoin

from reviewist_core.errors import RETRYABLE_ERRORS
from reviewist_core.gh.notifications import PageFetcher, walk_pages
from reviewist_core.models import FeedItem, FreshPage, PollCycleState

logger = logging.getLogger(__name__)

T = TypeVar("T")
Sleep = Callable[[float], Awaitable[None]]

NOTIFICATIONS_PATH = "notifications?all=true"


def notifications_url(github_base: str) -> str:
    return urljoin(github_base, NOTIFICATIONS_PATH)


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff: 10ms, 20ms, 40ms, ... for up to ``max_retries`` retries."""

    initial_delay: float = 0.01
    factor: float = 2.0
    max_retries: int = 5
    retry_on: tuple[type[Exception], ...] = RETRYABLE_ERRORS

    def delays(self) -> list[float]:
        return [self.initial_delay * self.factor**i for i in range(self.max_retries)]

    async def call(
        self,
        operation: Callable[[logging.LoggerAdapter | logging.Logger], Awaitable[T]],
        log: logging.LoggerAdapter | logging.Logger = logger,
        sleep: Sleep = asyncio.sleep,
    ) -> T:
        """Run ``operation`` until it succeeds or the retries run out.

        Errors outside ``retry_on`` propagate immediately. After the last
        retry the final error is re-raised to the caller.
        """
        schedule = [*self.delays(), None]
        for attempt, delay in enumerate(schedule, 1):
            attempt_log = log.bind(retry=attempt) if hasattr(log, "bind") else log
            try:
                return await operation(attempt_log)
            except self.retry_on as e:
                if delay is None:
                    raise
                attempt_log.warning(
                    "Poll attempt failed (%d/%d): %s. Retrying in %dms...",
                    attempt,
                    len(schedule),
                    e,
                    round(delay * 1000),
                )
                await sleep(delay)
        raise AssertionError("unreachable")  # pragma: no cover


@dataclass
class CycleResult:
    items: list[FeedItem] = field(default_factory=list)
    state: PollCycleState | None = None


class PollCycleOrchestrator:
    """Runs poll cycles against the notifications feed.

    The poll state is passed in and a new one handed back; nothing here keeps
    state between cycles.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        feed_url: str,
        retry: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.fetcher = fetcher
        self.feed_url = feed_url
        self.retry = retry or RetryPolicy()
        self._sleep = sleep

    async def run_cycle(self, state: PollCycleState, log=logger) -> CycleResult:
        state = await self.wait(state, log)
        return await self.fetch(state, log)

    async def wait(self, state: PollCycleState, log=logger) -> PollCycleState:
        """Sleep for the interval GitHub asked for, then clear it."""
        if state.pending_wait_seconds is None:
            return state
        log.debug("Start polling wait interval (%ds)", state.pending_wait_seconds)
        await self._sleep(state.pending_wait_seconds)
        log.debug("Finished polling wait interval (%ds)", state.pending_wait_seconds)
        return state.without_wait()

    async def fetch(self, state: PollCycleState, log=logger) -> CycleResult:
        return await self.retry.call(lambda attempt_log: self._walk(state, attempt_log), log, self._sleep)

    async def _walk(self, state: PollCycleState, log) -> CycleResult:
        items: list[FeedItem] = []
        first = None
        pages = 0
        async for page in walk_pages(self.fetcher, self.feed_url, state.cache_validator):
            if first is None:
                first = page
            pages += 1
            items.extend(page.items)

        # Only the first page's metadata describes the cycle.
        validator = first.cache_validator if isinstance(first, FreshPage) else None
        next_state = state.advanced(validator, first.wait_seconds)
        log.debug("Fetched %d notification(s) across %d page(s)", len(items), pages)
        return CycleResult(items=items, state=next_state)
