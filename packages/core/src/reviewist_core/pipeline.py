"""Wire the notification stream through lookup, dedup and task creation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from reviewist_core.gh.pull_requests import DetailResolver
from reviewist_core.gh.stream import CycleStreamDriver
from reviewist_core.models import ResolvedItem, ReviewItem
from reviewist_core.todoist import TodoistSink
from reviewist_core.utils.logs import cycle_logger

logger = logging.getLogger(__name__)

Admit = Callable[[ReviewItem], Awaitable[bool]]


class ReviewPipeline:
    """Polls for review requests and turns each new, open pull request into a task.

    ``admit`` returns True only the first time a pull request is seen; the
    store behind it is the only thing that decides what counts as new.
    """

    def __init__(self, driver: CycleStreamDriver, resolver: DetailResolver, admit: Admit, sink: TodoistSink):
        self.driver = driver
        self.resolver = resolver
        self.admit = admit
        self.sink = sink
        self._tasks: set[asyncio.Task] = set()

    async def run(self, max_cycles: int | None = None) -> None:
        events = self.driver.stream(max_cycles)
        try:
            async for resolved in self.resolver.resolve_unordered(events):
                log = cycle_logger(logger, resolved.cycle).bind(pull_request=resolved.item.number)
                if not resolved.item.is_open():
                    log.debug("Skipping closed pull request")
                    continue
                task = asyncio.create_task(self.deliver(resolved))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
        finally:
            if self._tasks:
                await asyncio.gather(*self._tasks, return_exceptions=True)

    async def deliver(self, resolved: ResolvedItem) -> bool:
        """Admit one pull request and, if it is new, create its task."""
        item = resolved.item
        log = cycle_logger(logger, resolved.cycle).bind(pull_request=item.number)
        try:
            admitted = await self.admit(item)
        except Exception as e:
            log.error("Error while recording review request (%s): %s", type(e).__name__, e)
            return False

        if not admitted:
            log.debug("Already recorded %s#%d", item.collection, item.number)
            return False

        log.info("PR received: %s#%d %s", item.collection, item.number, item.title)
        await self.sink.create_task(item, log)
        return True
