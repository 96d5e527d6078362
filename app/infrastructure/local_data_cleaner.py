from __future__ import annotations

import logging
import shutil
import sqlite3
from dataclasses import dataclass
from pathlib import Path

from app.core.errors import PersistenceError
from app.domain.ports import SessionStorePort
from app.infrastructure.sqlite_uow import transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CleanupReport:
    observations_deleted: int
    hikes_deleted: int
    images_removed: bool


class LocalDataCleaner:
    """Wipes everything a signed-out user left on the device."""

    def __init__(self, connection: sqlite3.Connection, images_dir: Path, session_store: SessionStorePort) -> None:
        self._connection = connection
        self._images_dir = images_dir
        self._session_store = session_store

    def clear_all(self) -> CleanupReport:
        try:
            with transaction(self._connection, label="clear_local_data"):
                observations_deleted = self._connection.execute("DELETE FROM observations").rowcount
                hikes_deleted = self._connection.execute("DELETE FROM hikes").rowcount
        except sqlite3.Error as error:
            raise PersistenceError(f"Local data cleanup failed: {error}") from error

        images_removed = False
        if self._images_dir.exists():
            shutil.rmtree(self._images_dir)
            images_removed = True
        self._session_store.clear()

        logger.info(
            "Local data cleared",
            extra={
                "extra": {
                    "observations_deleted": observations_deleted,
                    "hikes_deleted": hikes_deleted,
                    "images_removed": images_removed,
                }
            },
        )
        return CleanupReport(observations_deleted, hikes_deleted, images_removed)
