from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Iterable

from app.core.errors import BusinessError
from app.domain.models import Hike, Observation, SyncState
from app.domain.ports import HikeRepository, ObservationRepository
from app.domain.services import now_ms, validate_hike, validate_observation

logger = logging.getLogger(__name__)


class RecordNotFoundError(BusinessError):
    pass


class HikeUseCases:
    """Local hike lifecycle.

    Every user edit leaves the hike in ``LOCAL`` so the next upload picks it
    up; a hike that already has a remote id is sent as an update.
    """

    def __init__(self, repo: HikeRepository, *, clock: Callable[[], int] = now_ms) -> None:
        self._repo = repo
        self._clock = clock

    def list_hikes(self) -> Iterable[Hike]:
        return self._repo.list_all()

    def get_hike(self, hike_id: int) -> Hike:
        hike = self._repo.get_by_id(hike_id)
        if hike is None:
            raise RecordNotFoundError(f"Hike {hike_id} not found.")
        return hike

    def create_hike(self, hike: Hike) -> Hike:
        validate_hike(hike)
        timestamp = self._clock()
        created = self._repo.create(
            replace(
                hike,
                id=None,
                remote_id=None,
                sync_state=SyncState.LOCAL,
                is_deleted=False,
                created_at=timestamp,
                updated_at=timestamp,
            )
        )
        logger.info("Hike created", extra={"extra": {"hike_id": created.id}})
        return created

    def update_hike(self, hike: Hike) -> Hike:
        if hike.id is None:
            raise RecordNotFoundError("Cannot update a hike without id.")
        current = self.get_hike(hike.id)
        validate_hike(hike)
        updated = self._repo.update(
            replace(
                hike,
                remote_id=current.remote_id,
                sync_state=SyncState.LOCAL,
                is_deleted=False,
                created_at=current.created_at,
                updated_at=self._clock(),
            )
        )
        logger.info(
            "Hike updated",
            extra={"extra": {"hike_id": updated.id, "was_synced": current.is_synced}},
        )
        return updated

    def delete_hike(self, hike_id: int) -> bool:
        """Returns True when the hike was removed outright, False when it was tombstoned."""
        hike = self.get_hike(hike_id)
        if hike.remote_id is None:
            self._repo.permanently_delete(hike_id)
            logger.info("Hike deleted", extra={"extra": {"hike_id": hike_id}})
            return True
        self._repo.mark_deleted(hike_id, self._clock())
        logger.info(
            "Hike tombstoned until the remote delete succeeds",
            extra={"extra": {"hike_id": hike_id, "remote_id": hike.remote_id}},
        )
        return False


class ObservationUseCases:
    def __init__(
        self,
        repo: ObservationRepository,
        hikes: HikeRepository,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._repo = repo
        self._hikes = hikes
        self._clock = clock

    def list_for_hike(self, hike_id: int) -> Iterable[Observation]:
        return self._repo.list_for_hike(hike_id)

    def create_observation(self, observation: Observation) -> Observation:
        validate_observation(observation)
        if self._hikes.get_by_id(observation.hike_id) is None:
            raise RecordNotFoundError(f"Hike {observation.hike_id} not found.")
        timestamp = self._clock()
        return self._repo.create(
            replace(
                observation,
                id=None,
                remote_id=None,
                cloud_image_url=None,
                sync_state=SyncState.LOCAL,
                created_at=timestamp,
                updated_at=timestamp,
            )
        )

    def update_observation(self, observation: Observation) -> Observation:
        if observation.id is None:
            raise RecordNotFoundError("Cannot update an observation without id.")
        current = self._repo.get_by_id(observation.id)
        if current is None:
            raise RecordNotFoundError(f"Observation {observation.id} not found.")
        validate_observation(observation)
        cloud_image_url = current.cloud_image_url if observation.image_uri == current.image_uri else None
        return self._repo.update(
            replace(
                observation,
                remote_id=current.remote_id,
                cloud_image_url=cloud_image_url,
                sync_state=SyncState.LOCAL,
                created_at=current.created_at,
                updated_at=self._clock(),
            )
        )

    def delete_observation(self, observation_id: int) -> None:
        self._repo.delete(observation_id)
