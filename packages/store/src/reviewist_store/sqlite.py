"""SQLiteStore: local file-based record of review requests already handled.

Schema:
  review_requests: one row per pull request offered to the task sink,
                    unique on (project, pr_number).

All access goes through one connection guarded by one lock: the dedup check
and the insert that follows it must not interleave with another claim.
"""

from __future__ import annotations

import logging
import sqlite3
import threading

from reviewist_store.base import BaseStore
from reviewist_store.models import ReviewRequestRecord

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS review_requests (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    project      TEXT NOT NULL,
    pr_number    TEXT NOT NULL,
    pr_url       TEXT NOT NULL,
    pr_title     TEXT,
    recorded_at  TEXT,
    UNIQUE (project, pr_number)
);
CREATE INDEX IF NOT EXISTS idx_review_requests_project ON review_requests (project);
"""


class SQLiteStore(BaseStore):
    """Stores review requests in a SQLite database file.

    The path comes from DATABASE_URL. The schema is created on open, so a
    fresh file is ready to use (``reviewist migrate`` does just that).
    """

    def __init__(self, db_path: str = "reviewist.db"):
        self.db_path = db_path
        self._lock = threading.Lock()
        # Claims run on executor threads; the lock above serialises them.
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def claim(self, record: ReviewRequestRecord) -> bool:
        with self._lock:
            exists = self._conn.execute(
                "SELECT 1 FROM review_requests WHERE project=? AND pr_number=? LIMIT 1",
                (record.collection, record.item_number),
            ).fetchone()
            if exists is not None:
                return False

            self._conn.execute(
                """
                INSERT INTO review_requests (project, pr_number, pr_url, pr_title, recorded_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (record.collection, record.item_number, record.url, record.title, record.recorded_at),
            )
            self._conn.commit()
            logger.debug("Recorded review request %s#%s", record.collection, record.item_number)
            return True

    def list_records(self, collection: str | None = None) -> list[ReviewRequestRecord]:
        with self._lock:
            if collection is not None:
                rows = self._conn.execute(
                    "SELECT * FROM review_requests WHERE project=? ORDER BY id",
                    (collection,),
                ).fetchall()
            else:
                rows = self._conn.execute("SELECT * FROM review_requests ORDER BY id").fetchall()

        return [self._row_to_record(r) for r in rows]

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> ReviewRequestRecord:
        return ReviewRequestRecord(
            collection=row["project"],
            item_number=row["pr_number"],
            url=row["pr_url"],
            title=row["pr_title"] or "",
            recorded_at=row["recorded_at"] or "",
        )
