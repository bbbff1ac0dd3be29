"""Persisted review-request records.

Decoupled from reviewist_core so the store layer can be used independently
and reviewist_core has no knowledge of persistence concerns.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class ReviewRequestRecord:
    """A pull request that has been offered to the task sink.

    Created by the CLI layer from a resolved pull request before it is
    admitted. (collection, item_number) is the uniqueness key.
    """

    collection: str
    item_number: str
    url: str
    title: str
    recorded_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())  # ISO-8601 UTC

    @property
    def key(self) -> tuple[str, str]:
        return (self.collection, self.item_number)
