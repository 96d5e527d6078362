from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from app.domain.models import Hike, Observation, SyncState


# Shared column lists so every hike/observation query maps rows the same way.
HIKE_SELECT_FIELDS = """
    id, remote_id, name, location, date, time, length, difficulty,
    parking_available, description, privacy, latitude, longitude,
    sync_state, is_deleted, created_at, updated_at
""".strip()

OBSERVATION_SELECT_FIELDS = """
    id, remote_id, hike_id, title, time, comments, image_uri, cloud_image_url,
    latitude, longitude, status, confirmations, disputes,
    sync_state, created_at, updated_at
""".strip()


def int_or_zero(value: int | None) -> int:
    return 0 if value is None else int(value)


def float_or_none(value: float | None) -> float | None:
    if value is None:
        return None
    return float(value)


def row_to_hike(row: Mapping[str, Any]) -> Hike:
    return Hike(
        id=row["id"],
        remote_id=row["remote_id"],
        name=row["name"],
        location=row["location"] or "",
        date=row["date"] or "",
        time=row["time"] or "",
        length=float(row["length"] or 0),
        difficulty=row["difficulty"],
        parking_available=bool(row["parking_available"]),
        description=row["description"] or "",
        privacy=row["privacy"],
        latitude=float_or_none(row["latitude"]),
        longitude=float_or_none(row["longitude"]),
        sync_state=SyncState(row["sync_state"]),
        is_deleted=bool(row["is_deleted"]),
        created_at=int_or_zero(row["created_at"]),
        updated_at=int_or_zero(row["updated_at"]),
    )


def hike_to_params(hike: Hike) -> tuple[Any, ...]:
    """Column values in ``HIKE_WRITE_COLUMNS`` order."""
    return (
        hike.remote_id,
        hike.name,
        hike.location,
        hike.date,
        hike.time,
        hike.length,
        hike.difficulty,
        int(hike.parking_available),
        hike.description,
        hike.privacy,
        hike.latitude,
        hike.longitude,
        hike.sync_state.value,
        int(hike.is_deleted),
        hike.created_at,
        hike.updated_at,
    )


HIKE_WRITE_COLUMNS = (
    "remote_id",
    "name",
    "location",
    "date",
    "time",
    "length",
    "difficulty",
    "parking_available",
    "description",
    "privacy",
    "latitude",
    "longitude",
    "sync_state",
    "is_deleted",
    "created_at",
    "updated_at",
)


def row_to_observation(row: Mapping[str, Any]) -> Observation:
    return Observation(
        id=row["id"],
        remote_id=row["remote_id"],
        hike_id=row["hike_id"],
        title=row["title"],
        time=row["time"] or "",
        comments=row["comments"] or "",
        image_uri=row["image_uri"],
        cloud_image_url=row["cloud_image_url"],
        latitude=float_or_none(row["latitude"]),
        longitude=float_or_none(row["longitude"]),
        status=row["status"],
        confirmations=int_or_zero(row["confirmations"]),
        disputes=int_or_zero(row["disputes"]),
        sync_state=SyncState(row["sync_state"]),
        created_at=int_or_zero(row["created_at"]),
        updated_at=int_or_zero(row["updated_at"]),
    )


OBSERVATION_WRITE_COLUMNS = (
    "remote_id",
    "hike_id",
    "title",
    "time",
    "comments",
    "image_uri",
    "cloud_image_url",
    "latitude",
    "longitude",
    "status",
    "confirmations",
    "disputes",
    "sync_state",
    "created_at",
    "updated_at",
)


def observation_to_params(observation: Observation) -> tuple[Any, ...]:
    """Column values in ``OBSERVATION_WRITE_COLUMNS`` order."""
    return (
        observation.remote_id,
        observation.hike_id,
        observation.title,
        observation.time,
        observation.comments,
        observation.image_uri,
        observation.cloud_image_url,
        observation.latitude,
        observation.longitude,
        observation.status,
        observation.confirmations,
        observation.disputes,
        observation.sync_state.value,
        observation.created_at,
        observation.updated_at,
    )
