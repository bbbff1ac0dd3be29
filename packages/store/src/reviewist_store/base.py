"""Abstract store interface.

The dedup gate and the CLI depend on BaseStore, not on a concrete backend,
so backends are swappable without touching pipeline code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from reviewist_store.models import ReviewRequestRecord


class BaseStore(ABC):
    """Durable record of every pull request handed to the task sink.

    Implementations are called from worker threads, so they must serialise
    access to their own connection.
    """

    @abstractmethod
    def claim(self, record: ReviewRequestRecord) -> bool:
        """Insert ``record`` unless its key already exists.

        Returns True when the record was inserted, False when the key was
        already present. The existence check and the insert happen as one
        unit: two concurrent claims for the same key never both succeed.
        """

    @abstractmethod
    def list_records(self, collection: str | None = None) -> list[ReviewRequestRecord]:
        """Return recorded review requests, oldest first, optionally for one repository.

        Returns an empty list if nothing has been recorded.
        """

    def close(self) -> None:
        """Release any resources held by the store (connections, file handles).

        Optional. Subclasses that need cleanup should override this.
        """
