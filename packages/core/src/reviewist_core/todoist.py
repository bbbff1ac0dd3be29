"""Todoist task creation for admitted pull requests.

One POST per pull request, no retries: a failed call is logged and the pull
request stays recorded in the store, so it will not be offered again.
"""

from __future__ import annotations

import logging
from urllib.parse import urljoin

import httpx

from reviewist_core.models import ReviewItem

logger = logging.getLogger(__name__)

TASKS_PATH = "API/v8/tasks"


def build_todoist_client(token: str, timeout: float = 30.0, transport=None) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        headers={"Authorization": f"Bearer {token}"},
        timeout=httpx.Timeout(timeout),
        transport=transport,
    )


def task_for_pull_request(item: ReviewItem, due: str = "today") -> dict:
    return {
        "content": f"{item.url} ({item.collection}#{item.number}: {item.title})",
        "due_string": due,
    }


class TodoistSink:
    def __init__(self, http: httpx.AsyncClient, base_url: str, due: str = "today"):
        self._http = http
        self.tasks_url = urljoin(base_url, TASKS_PATH)
        self.due = due

    async def create_task(self, item: ReviewItem, log=logger) -> bool:
        """Create a task for ``item``; return False (after logging) on any failure."""
        try:
            response = await self._http.post(self.tasks_url, json=task_for_pull_request(item, self.due))
        except httpx.HTTPError as e:
            log.error("Error while creating todoist task for %s#%d: %s", item.collection, item.number, e)
            return False

        if not response.is_success:
            log.error(
                "Error while creating todoist task for %s#%d: HTTP %d %s",
                item.collection,
                item.number,
                response.status_code,
                response.text[:200],
            )
            return False

        log.info("Created todoist task for %s#%d", item.collection, item.number)
        return True
