from __future__ import annotations

from typing import Any

from app.domain.models import Difficulty, Hike, Observation, ObservationStatus, Privacy, SyncState


def _first(record: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return default


def clean_text(value: Any) -> str:
    return str(value or "").strip()


def optional_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def non_negative_int(value: Any) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def remote_id_of(record: dict[str, Any]) -> str | None:
    value = record.get("id")
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _choice(value: Any, allowed: set[str], default: str) -> str:
    text = clean_text(value)
    for candidate in allowed:
        if candidate.lower() == text.lower():
            return candidate
    return default


def build_hike_payload(hike: Hike, user_id: str) -> dict[str, Any]:
    return {
        "userId": user_id,
        "name": hike.name,
        "location": hike.location,
        "length": hike.length,
        "difficulty": hike.difficulty,
        "description": hike.description or "",
        "privacy": hike.privacy,
        "lat": hike.latitude,
        "lng": hike.longitude,
    }


def build_observation_payload(
    observation: Observation,
    *,
    user_id: str,
    remote_hike_id: str,
    image_url: str | None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "title": observation.title,
        "userId": user_id,
        "hikeId": remote_hike_id,
        "time": observation.time,
        "comments": observation.comments or "",
        "status": observation.status,
    }
    if observation.latitude is not None and observation.longitude is not None:
        payload["lat"] = observation.latitude
        payload["lng"] = observation.longitude
    if image_url:
        payload["imageUrl"] = image_url
    return payload


def hike_from_remote(record: dict[str, Any], remote_id: str, timestamp_ms: int) -> Hike:
    """Local copy of a downloaded hike: no local id yet, already in sync."""
    length = optional_float(record.get("length"))
    return Hike(
        id=None,
        remote_id=remote_id,
        name=clean_text(record.get("name")),
        location=clean_text(record.get("location")),
        date=clean_text(record.get("date")),
        time=clean_text(record.get("time")),
        length=length if length is not None and length >= 0 else 0.0,
        difficulty=_choice(record.get("difficulty"), {item.value for item in Difficulty}, Difficulty.EASY.value),
        parking_available=bool(_first(record, "parkingAvailable", "parking_available", default=False)),
        description=str(record.get("description") or ""),
        privacy=_choice(record.get("privacy"), {item.value for item in Privacy}, Privacy.PRIVATE.value),
        latitude=optional_float(_first(record, "lat", "latitude")),
        longitude=optional_float(_first(record, "lng", "longitude")),
        sync_state=SyncState.SYNCED,
        is_deleted=False,
        created_at=timestamp_ms,
        updated_at=timestamp_ms,
    )


def observation_from_remote(
    record: dict[str, Any],
    *,
    remote_id: str,
    local_hike_id: int,
    local_image_path: str | None,
    timestamp_ms: int,
) -> Observation:
    cloud_image_url = _first(record, "imageUrl", "image_url", "cloudImageUrl")
    return Observation(
        id=None,
        remote_id=remote_id,
        hike_id=local_hike_id,
        title=clean_text(record.get("title")),
        time=clean_text(record.get("time")),
        comments=str(record.get("comments") or ""),
        image_uri=local_image_path,
        cloud_image_url=str(cloud_image_url) if cloud_image_url else None,
        latitude=optional_float(_first(record, "lat", "latitude")),
        longitude=optional_float(_first(record, "lng", "longitude")),
        status=_choice(
            record.get("status"),
            {item.value for item in ObservationStatus},
            ObservationStatus.OPEN.value,
        ),
        confirmations=non_negative_int(record.get("confirmations")),
        disputes=non_negative_int(record.get("disputes")),
        sync_state=SyncState.SYNCED,
        created_at=timestamp_ms,
        updated_at=timestamp_ms,
    )
