"""Dedup gate: decides, once per pull request, whether it goes downstream.

Store calls block, so they run on a dedicated thread pool and never stall the
event loop that drives polling.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor

from reviewist_store.base import BaseStore
from reviewist_store.errors import SchedulingError
from reviewist_store.models import ReviewRequestRecord

logger = logging.getLogger(__name__)


class DedupGate:
    def __init__(self, store: BaseStore, executor: ThreadPoolExecutor | None = None, workers: int = 2):
        self.store = store
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=workers, thread_name_prefix="reviewist-store")

    async def admit(self, record: ReviewRequestRecord) -> bool:
        """Return True if ``record`` was newly recorded and should be forwarded.

        Store errors propagate to the caller.
        """
        loop = asyncio.get_running_loop()
        try:
            future = loop.run_in_executor(self._executor, self.store.claim, record)
        except RuntimeError as e:
            # Raised when the executor has already been shut down.
            raise SchedulingError(f"Could not schedule store work: {e}") from e
        return await future

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)
