from __future__ import annotations

import contextlib
import itertools
import logging
import sqlite3
from collections.abc import Iterator

logger = logging.getLogger(__name__)

_savepoint_counter = itertools.count(1)


@contextlib.contextmanager
def transaction(connection: sqlite3.Connection, *, label: str = "unit_of_work") -> Iterator[sqlite3.Connection]:
    """Yields ``connection`` with every statement in the block applied all-or-nothing.

    The outermost call takes the write lock up front with ``BEGIN IMMEDIATE``.
    A call made while a transaction is already open opens a named savepoint, so a
    failing inner block discards only its own writes.
    """
    if connection.in_transaction:
        with _savepoint(connection, label):
            yield connection
        return

    connection.execute("BEGIN IMMEDIATE")
    try:
        yield connection
    except BaseException:
        connection.rollback()
        logger.debug("Rolled back %s", label)
        raise
    connection.commit()


@contextlib.contextmanager
def _savepoint(connection: sqlite3.Connection, label: str) -> Iterator[None]:
    name = f'"{label}_{next(_savepoint_counter)}"'
    connection.execute(f"SAVEPOINT {name}")
    try:
        yield
    except BaseException:
        connection.execute(f"ROLLBACK TO {name}")
        connection.execute(f"RELEASE {name}")
        logger.debug("Rolled back savepoint %s", name)
        raise
    connection.execute(f"RELEASE {name}")
