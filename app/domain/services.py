from __future__ import annotations

import time

from app.core.errors import ValidationError
from app.domain.models import Difficulty, Hike, Observation, ObservationStatus, Privacy

_DIFFICULTIES = {item.value for item in Difficulty}
_PRIVACIES = {item.value for item in Privacy}
_OBSERVATION_STATUSES = {item.value for item in ObservationStatus}


def now_ms() -> int:
    return int(time.time() * 1000)


def validate_hike(hike: Hike) -> None:
    if not hike.name.strip():
        raise ValidationError("Hike name is required.")
    if hike.length < 0:
        raise ValidationError("Hike length cannot be negative.")
    if hike.difficulty not in _DIFFICULTIES:
        raise ValidationError(f"Unknown difficulty: {hike.difficulty}.")
    if hike.privacy not in _PRIVACIES:
        raise ValidationError(f"Unknown privacy setting: {hike.privacy}.")


def validate_observation(observation: Observation) -> None:
    if not observation.title.strip():
        raise ValidationError("Observation title is required.")
    if observation.hike_id <= 0:
        raise ValidationError("Observation must belong to a saved hike.")
    if observation.status not in _OBSERVATION_STATUSES:
        raise ValidationError(f"Unknown observation status: {observation.status}.")


def compute_sync_percentage(synced: int, total: int) -> int:
    if total <= 0:
        return 0
    return (100 * synced) // total
