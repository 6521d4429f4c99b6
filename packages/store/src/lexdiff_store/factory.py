from __future__ import annotations

import logging

from lexdiff_store.base import BaseStore
from lexdiff_store.noop import NoOpStore

logger = logging.getLogger(__name__)


def build_store(config: dict) -> BaseStore:
    """Instantiate the configured store from .lexdiff.yml settings.

    Store selection:
      store: sqlite → SQLiteStore (uses store_path, default .lexdiff.db)
      (default)     → NoOpStore   (no history)
    """
    store_type = config.get("store", "noop")

    if store_type == "sqlite":
        from lexdiff_store.sqlite import SQLiteStore

        return SQLiteStore(db_path=config.get("store_path", ".lexdiff.db"))

    if store_type != "noop":
        logger.warning("Unknown store type %r; falling back to no store", store_type)
    return NoOpStore()
