from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from app.bootstrap.settings import resolve_database_path

logger = logging.getLogger(__name__)

DEFAULT_BUSY_TIMEOUT_MS = 30000

# Applied in order on every new connection.
_RUNTIME_PRAGMAS: tuple[tuple[str, str], ...] = (
    ("synchronous", "NORMAL"),
    ("foreign_keys", "ON"),
)


def configure_sqlite_connection(connection: sqlite3.Connection, busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS) -> None:
    connection.row_factory = sqlite3.Row
    journal_mode = connection.execute("PRAGMA journal_mode=WAL").fetchone()[0]
    if str(journal_mode).lower() != "wal":
        # In-memory and some network filesystems refuse WAL.
        logger.warning("SQLite kept journal_mode=%s", journal_mode)
    for pragma, value in _RUNTIME_PRAGMAS:
        connection.execute(f"PRAGMA {pragma}={value}")
    connection.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")


def get_connection(
    db_path: Path | None = None,
    *,
    busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
    check_same_thread: bool = False,
) -> sqlite3.Connection:
    """Opens the HikeLog database, creating its folder on first use.

    ``check_same_thread`` defaults to False because sync runs use the
    connection from a worker thread; the engine serializes access itself.
    """
    path = Path(db_path) if db_path is not None else resolve_database_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    connection = sqlite3.connect(
        str(path),
        check_same_thread=check_same_thread,
        timeout=max(1.0, busy_timeout_ms / 1000),
    )
    try:
        configure_sqlite_connection(connection, busy_timeout_ms=busy_timeout_ms)
    except sqlite3.Error:
        connection.close()
        raise
    logger.debug("Opened database %s", path)
    return connection
