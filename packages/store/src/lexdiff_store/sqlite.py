"""SQLiteStore: local file-based diff history.

Schema:
  diffs: one row per saved StatuteDiff. The full diff is kept as JSON in
          payload_json; severity and change_count are copied out so history
          can be summarised without decoding every payload.
"""

from __future__ import annotations

import json
import logging
import sqlite3

from lexdiff_core.diff import StatuteDiff
from lexdiff_store.base import BaseStore
from lexdiff_store.models import DiffRecord

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS diffs (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    statute_id      TEXT NOT NULL,
    recorded_at     TEXT,
    severity        TEXT,
    change_count    INTEGER DEFAULT 0,
    payload_json    TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_diffs_statute ON diffs (statute_id);
"""


class SQLiteStore(BaseStore):
    """Stores diff history in a local SQLite database file (default `.lexdiff.db`)."""

    def __init__(self, db_path: str = ".lexdiff.db"):
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def save(self, diff: StatuteDiff) -> None:
        record = DiffRecord.from_diff(diff)
        self._conn.execute(
            """
            INSERT INTO diffs (statute_id, recorded_at, severity, change_count, payload_json)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                record.statute_id,
                record.recorded_at,
                record.severity,
                record.change_count,
                json.dumps(record.payload),
            ),
        )
        self._conn.commit()
        logger.debug("Saved diff for %s (%d change(s))", record.statute_id, record.change_count)

    def list_records(self, statute_id: str) -> list[DiffRecord]:
        # id breaks ties between records saved within the same timestamp.
        rows = self._conn.execute(
            "SELECT * FROM diffs WHERE statute_id=? ORDER BY recorded_at, id",
            (statute_id,),
        ).fetchall()
        return [self._row_to_record(r) for r in rows]

    def list_diffs(self, statute_id: str) -> list[StatuteDiff]:
        return [record.to_diff() for record in self.list_records(statute_id)]

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> DiffRecord:
        return DiffRecord(
            statute_id=row["statute_id"],
            severity=row["severity"] or "none",
            change_count=row["change_count"] or 0,
            payload=json.loads(row["payload_json"]),
            recorded_at=row["recorded_at"] or "",
        )
