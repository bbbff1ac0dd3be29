"""Notification and pull request data models.

Decoupled from reviewist_store so the polling pipeline has no knowledge of
persistence. The CLI maps ReviewItem → ReviewRequestRecord before admitting.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import NamedTuple

REVIEW_REQUESTED = "review_requested"
PULL_REQUEST = "PullRequest"

# Cold-start lookback for the first conditional request.
INITIAL_LOOKBACK = timedelta(days=7)


def _require_str(value) -> str:
    if not isinstance(value, str):
        raise TypeError(f"expected a string, got {type(value).__name__}")
    return value


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp as sent by GitHub (``Z`` suffix accepted)."""
    if value is None:
        return None
    value = _require_str(value)
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


@dataclass(frozen=True)
class FeedItem:
    """One element of a notifications page."""

    reason: str
    subject_type: str
    subject_title: str
    subject_url: str
    collection_name: str

    @classmethod
    def from_json(cls, obj: dict) -> FeedItem:
        """Build a FeedItem from a raw notification object.

        Raises KeyError or TypeError when a required field is missing or is
        not a string; the page parser turns those into warnings.
        """
        subject = obj["subject"]
        return cls(
            reason=_require_str(obj["reason"]),
            subject_type=_require_str(subject["type"]),
            subject_title=_require_str(subject["title"]),
            subject_url=_require_str(subject["url"]),
            collection_name=_require_str(obj["repository"]["name"]),
        )

    def to_review_request(self) -> ReviewRequestEvent | None:
        if self.reason != REVIEW_REQUESTED or self.subject_type != PULL_REQUEST:
            return None
        return ReviewRequestEvent(
            title=self.subject_title,
            collection=self.collection_name,
            detail_url=self.subject_url,
        )


@dataclass(frozen=True)
class ReviewRequestEvent:
    title: str
    collection: str
    detail_url: str


@dataclass(frozen=True)
class ReviewItem:
    """A pull request resolved from a review request."""

    number: int
    title: str
    url: str
    collection: str
    created_at: datetime
    merged_at: datetime | None = None
    closed_at: datetime | None = None

    @classmethod
    def from_json(cls, obj: dict) -> ReviewItem:
        return cls(
            number=int(obj["number"]),
            title=_require_str(obj["title"]),
            url=_require_str(obj["html_url"]),
            collection=_require_str(obj["base"]["repo"]["name"]),
            created_at=parse_timestamp(_require_str(obj["created_at"])),
            merged_at=parse_timestamp(obj.get("merged_at")),
            closed_at=parse_timestamp(obj.get("closed_at")),
        )

    def is_open(self) -> bool:
        return self.merged_at is None and self.closed_at is None


@dataclass(frozen=True)
class PollCycleState:
    """Conditional-request bookkeeping handed from one poll cycle to the next.

    Never mutated: each cycle returns a new value.
    """

    cache_validator: datetime
    pending_wait_seconds: int | None = None

    @classmethod
    def initial(cls, now: datetime | None = None) -> PollCycleState:
        now = now or datetime.now(timezone.utc)
        return cls(cache_validator=now - INITIAL_LOOKBACK)

    def without_wait(self) -> PollCycleState:
        return replace(self, pending_wait_seconds=None)

    def advanced(self, cache_validator: datetime | None, wait_seconds: int | None) -> PollCycleState:
        """Return the state for the next cycle; an absent validator keeps the current one."""
        return PollCycleState(
            cache_validator=cache_validator or self.cache_validator,
            pending_wait_seconds=wait_seconds,
        )


# --------------------------------------------------------------------------- #
# Page results                                                                 #
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class FreshPage:
    items: list[FeedItem] = field(default_factory=list)
    next_page_url: str | None = None
    cache_validator: datetime | None = None
    wait_seconds: int | None = None


@dataclass(frozen=True)
class NotModifiedPage:
    wait_seconds: int | None = None

    @property
    def items(self) -> list[FeedItem]:
        return []


@dataclass(frozen=True)
class UnrecognizedPage:
    status: int


PageResult = FreshPage | NotModifiedPage | UnrecognizedPage


class CycleEvent(NamedTuple):
    """A review request tagged with the poll cycle that produced it."""

    event: ReviewRequestEvent
    cycle: int


class ResolvedItem(NamedTuple):
    item: ReviewItem
    cycle: int
