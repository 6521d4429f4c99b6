"""Diff history data models.

A DiffRecord is the persisted form of one StatuteDiff: a few indexed
columns for querying plus the full diff payload.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

from lexdiff_core.diff import StatuteDiff


@dataclass
class DiffRecord:
    statute_id: str
    severity: str  # "none" | "minor" | "moderate" | "major" | "breaking"
    change_count: int
    payload: dict
    recorded_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())  # ISO-8601 UTC

    @classmethod
    def from_diff(cls, diff: StatuteDiff) -> DiffRecord:
        return cls(
            statute_id=diff.statute_id,
            severity=diff.impact.severity.name.lower(),
            change_count=len(diff.changes),
            payload=diff.to_dict(),
        )

    def to_diff(self) -> StatuteDiff:
        return StatuteDiff.from_dict(self.payload)
