"""Abstract store interface.

Any storage backend for diff history implements this interface. The
analysis pipeline depends on BaseStore, not on a concrete backend, so
backends are swappable without touching the pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lexdiff_core.diff import StatuteDiff


class BaseStore(ABC):
    """Pluggable persistence layer for statute diff history."""

    @abstractmethod
    def save(self, diff: StatuteDiff) -> None:
        """Persist one diff."""

    @abstractmethod
    def list_diffs(self, statute_id: str) -> list[StatuteDiff]:
        """Return every stored diff for a statute, oldest first.

        Returns an empty list if the statute has no history.
        """

    def close(self) -> None:
        """Release any resources held by the store.

        Default is a no-op so callers can always call close() safely.
        """
