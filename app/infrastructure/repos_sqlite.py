from __future__ import annotations

import logging
import sqlite3
import time
from dataclasses import replace
from typing import Callable, Iterable, TypeVar

from app.core.errors import PersistenceError, ValidationError
from app.domain.models import Hike, Observation, SyncState
from app.domain.ports import HikeRepository, ObservationRepository
from app.domain.services import now_ms
from app.infrastructure.repos_sqlite_builders import (
    HIKE_SELECT_FIELDS,
    HIKE_WRITE_COLUMNS,
    OBSERVATION_SELECT_FIELDS,
    OBSERVATION_WRITE_COLUMNS,
    hike_to_params,
    observation_to_params,
    row_to_hike,
    row_to_observation,
)


logger = logging.getLogger(__name__)

_LOCKED_RETRY_BACKOFF_SECONDS = (0.05, 0.15, 0.3)
_T = TypeVar("_T")


def _is_locked_operational_error(error: sqlite3.OperationalError) -> bool:
    return "locked" in str(error).lower()


def _run_with_locked_retry(operation: Callable[[], _T], *, context: str) -> _T:
    for attempt, delay_seconds in enumerate(_LOCKED_RETRY_BACKOFF_SECONDS, start=1):
        try:
            return operation()
        except sqlite3.OperationalError as error:
            if not _is_locked_operational_error(error):
                raise
            logger.warning(
                "SQLite locked in %s (attempt=%s/%s); retrying in %.0fms",
                context,
                attempt,
                len(_LOCKED_RETRY_BACKOFF_SECONDS),
                delay_seconds * 1000,
            )
            time.sleep(delay_seconds)

    return operation()


def _guarded(operation: Callable[[], _T], *, context: str) -> _T:
    try:
        return _run_with_locked_retry(operation, context=context)
    except sqlite3.Error as error:
        raise PersistenceError(f"{context} failed: {error}") from error


def _execute_with_validation(cursor: sqlite3.Cursor, sql: str, params: Iterable[object], context: str) -> None:
    expected = sql.count("?")
    params_list = list(params)
    actual = len(params_list)
    if expected != actual:
        raise ValueError(
            f"SQL param mismatch for {context}: expected {expected} placeholders, got {actual} parameters."
        )
    cursor.execute(sql, tuple(params_list))


def _check_identity_invariant(remote_id: str | None, sync_state: SyncState) -> None:
    if remote_id is None and sync_state is SyncState.SYNCED:
        raise ValidationError("A record without a remote id cannot be marked as synced.")


def _insert_sql(table: str, columns: tuple[str, ...]) -> str:
    placeholders = ", ".join("?" for _ in columns)
    return f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"


def _update_sql(table: str, columns: tuple[str, ...]) -> str:
    assignments = ", ".join(f"{column} = ?" for column in columns)
    return f"UPDATE {table} SET {assignments} WHERE id = ?"


class HikeRepositorySQLite(HikeRepository):
    """Hike rows, including tombstones.

    Tombstoned rows are hidden from every query except ``get_by_remote_id``
    and ``list_deleted``; download dedup must see them so a pending delete is
    never resurrected.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def create(self, hike: Hike) -> Hike:
        _check_identity_invariant(hike.remote_id, hike.sync_state)
        timestamp = now_ms()
        to_insert = replace(
            hike,
            id=None,
            created_at=hike.created_at or timestamp,
            updated_at=hike.updated_at or timestamp,
        )

        def _operation() -> Hike:
            cursor = self._connection.cursor()
            _execute_with_validation(
                cursor,
                _insert_sql("hikes", HIKE_WRITE_COLUMNS),
                hike_to_params(to_insert),
                "hikes.create",
            )
            self._connection.commit()
            return replace(to_insert, id=cursor.lastrowid)

        return _guarded(_operation, context="hikes.create")

    def update(self, hike: Hike) -> Hike:
        if hike.id is None:
            raise ValidationError("Cannot update a hike that was never stored.")
        _check_identity_invariant(hike.remote_id, hike.sync_state)

        def _operation() -> Hike:
            cursor = self._connection.cursor()
            _execute_with_validation(
                cursor,
                _update_sql("hikes", HIKE_WRITE_COLUMNS),
                [*hike_to_params(hike), hike.id],
                "hikes.update",
            )
            if cursor.rowcount == 0:
                self._connection.rollback()
                raise PersistenceError(f"Hike {hike.id} does not exist.")
            self._connection.commit()
            return hike

        return _guarded(_operation, context="hikes.update")

    def get_by_id(self, hike_id: int) -> Hike | None:
        def _operation() -> Hike | None:
            row = self._connection.execute(
                f"SELECT {HIKE_SELECT_FIELDS} FROM hikes WHERE id = ? AND is_deleted = 0",
                (hike_id,),
            ).fetchone()
            return row_to_hike(row) if row else None

        return _guarded(_operation, context="hikes.get_by_id")

    def get_by_remote_id(self, remote_id: str) -> Hike | None:
        def _operation() -> Hike | None:
            row = self._connection.execute(
                f"SELECT {HIKE_SELECT_FIELDS} FROM hikes WHERE remote_id = ? ORDER BY id LIMIT 1",
                (remote_id,),
            ).fetchone()
            return row_to_hike(row) if row else None

        return _guarded(_operation, context="hikes.get_by_remote_id")

    def list_all(self) -> Iterable[Hike]:
        def _operation() -> list[Hike]:
            rows = self._connection.execute(
                f"""
                SELECT {HIKE_SELECT_FIELDS}
                FROM hikes
                WHERE is_deleted = 0
                ORDER BY created_at DESC, id DESC
                """
            ).fetchall()
            return [row_to_hike(row) for row in rows]

        return _guarded(_operation, context="hikes.list_all")

    def list_by_sync_state(self, sync_state: SyncState) -> Iterable[Hike]:
        def _operation() -> list[Hike]:
            rows = self._connection.execute(
                f"""
                SELECT {HIKE_SELECT_FIELDS}
                FROM hikes
                WHERE sync_state = ? AND is_deleted = 0
                ORDER BY created_at DESC, id DESC
                """,
                (sync_state.value,),
            ).fetchall()
            return [row_to_hike(row) for row in rows]

        return _guarded(_operation, context="hikes.list_by_sync_state")

    def list_deleted(self) -> Iterable[Hike]:
        def _operation() -> list[Hike]:
            rows = self._connection.execute(
                f"""
                SELECT {HIKE_SELECT_FIELDS}
                FROM hikes
                WHERE is_deleted = 1
                ORDER BY created_at DESC, id DESC
                """
            ).fetchall()
            return [row_to_hike(row) for row in rows]

        return _guarded(_operation, context="hikes.list_deleted")

    def mark_deleted(self, hike_id: int, updated_at: int) -> None:
        def _operation() -> None:
            self._connection.execute(
                "UPDATE hikes SET is_deleted = 1, updated_at = ? WHERE id = ?",
                (updated_at, hike_id),
            )
            self._connection.commit()

        _guarded(_operation, context="hikes.mark_deleted")

    def permanently_delete(self, hike_id: int) -> None:
        def _operation() -> None:
            self._connection.execute("DELETE FROM hikes WHERE id = ?", (hike_id,))
            self._connection.commit()

        _guarded(_operation, context="hikes.permanently_delete")

    def count_by_sync_state(self, sync_state: SyncState | None = None) -> int:
        def _operation() -> int:
            if sync_state is None:
                row = self._connection.execute(
                    "SELECT COUNT(*) AS total FROM hikes WHERE is_deleted = 0"
                ).fetchone()
            else:
                row = self._connection.execute(
                    "SELECT COUNT(*) AS total FROM hikes WHERE is_deleted = 0 AND sync_state = ?",
                    (sync_state.value,),
                ).fetchone()
            return int(row["total"])

        return _guarded(_operation, context="hikes.count_by_sync_state")


class ObservationRepositorySQLite(ObservationRepository):
    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection

    def create(self, observation: Observation) -> Observation:
        _check_identity_invariant(observation.remote_id, observation.sync_state)
        timestamp = now_ms()
        to_insert = replace(
            observation,
            id=None,
            created_at=observation.created_at or timestamp,
            updated_at=observation.updated_at or timestamp,
        )

        def _operation() -> Observation:
            cursor = self._connection.cursor()
            _execute_with_validation(
                cursor,
                _insert_sql("observations", OBSERVATION_WRITE_COLUMNS),
                observation_to_params(to_insert),
                "observations.create",
            )
            self._connection.commit()
            return replace(to_insert, id=cursor.lastrowid)

        return _guarded(_operation, context="observations.create")

    def update(self, observation: Observation) -> Observation:
        if observation.id is None:
            raise ValidationError("Cannot update an observation that was never stored.")
        _check_identity_invariant(observation.remote_id, observation.sync_state)

        def _operation() -> Observation:
            cursor = self._connection.cursor()
            _execute_with_validation(
                cursor,
                _update_sql("observations", OBSERVATION_WRITE_COLUMNS),
                [*observation_to_params(observation), observation.id],
                "observations.update",
            )
            if cursor.rowcount == 0:
                self._connection.rollback()
                raise PersistenceError(f"Observation {observation.id} does not exist.")
            self._connection.commit()
            return observation

        return _guarded(_operation, context="observations.update")

    def get_by_id(self, observation_id: int) -> Observation | None:
        def _operation() -> Observation | None:
            row = self._connection.execute(
                f"SELECT {OBSERVATION_SELECT_FIELDS} FROM observations WHERE id = ?",
                (observation_id,),
            ).fetchone()
            return row_to_observation(row) if row else None

        return _guarded(_operation, context="observations.get_by_id")

    def get_by_remote_id(self, remote_id: str) -> Observation | None:
        def _operation() -> Observation | None:
            row = self._connection.execute(
                f"SELECT {OBSERVATION_SELECT_FIELDS} FROM observations WHERE remote_id = ? ORDER BY id LIMIT 1",
                (remote_id,),
            ).fetchone()
            return row_to_observation(row) if row else None

        return _guarded(_operation, context="observations.get_by_remote_id")

    def list_for_hike(self, hike_id: int) -> Iterable[Observation]:
        def _operation() -> list[Observation]:
            rows = self._connection.execute(
                f"""
                SELECT {OBSERVATION_SELECT_FIELDS}
                FROM observations
                WHERE hike_id = ?
                ORDER BY created_at DESC, id DESC
                """,
                (hike_id,),
            ).fetchall()
            return [row_to_observation(row) for row in rows]

        return _guarded(_operation, context="observations.list_for_hike")

    def list_by_sync_state(self, sync_state: SyncState) -> Iterable[Observation]:
        def _operation() -> list[Observation]:
            rows = self._connection.execute(
                f"""
                SELECT {OBSERVATION_SELECT_FIELDS}
                FROM observations
                WHERE sync_state = ?
                ORDER BY created_at DESC, id DESC
                """,
                (sync_state.value,),
            ).fetchall()
            return [row_to_observation(row) for row in rows]

        return _guarded(_operation, context="observations.list_by_sync_state")

    def delete(self, observation_id: int) -> None:
        def _operation() -> None:
            self._connection.execute("DELETE FROM observations WHERE id = ?", (observation_id,))
            self._connection.commit()

        _guarded(_operation, context="observations.delete")
