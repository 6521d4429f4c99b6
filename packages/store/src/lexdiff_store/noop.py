"""No-op store: the default when no store is configured.

Using a NoOpStore rather than None lets callers always call save() and
list_diffs() without conditional checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from lexdiff_store.base import BaseStore

if TYPE_CHECKING:
    from lexdiff_core.diff import StatuteDiff


class NoOpStore(BaseStore):
    """Discards every diff; history is always empty."""

    def save(self, diff: StatuteDiff) -> None:
        pass

    def list_diffs(self, statute_id: str) -> list[StatuteDiff]:
        return []
