"""Use cases grouped by aggregate."""

from app.application.use_cases.hikes import HikeUseCases, ObservationUseCases, RecordNotFoundError

__all__ = [
    "HikeUseCases",
    "ObservationUseCases",
    "RecordNotFoundError",
]
