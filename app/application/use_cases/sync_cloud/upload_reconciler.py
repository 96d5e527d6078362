from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from typing import Callable

from app.application.use_cases.sync_cloud.payloads import build_hike_payload, build_observation_payload
from app.core.errors import AppError, describe_error
from app.domain.models import Hike, Observation, SyncState
from app.domain.ports import (
    AssetTransferPort,
    HikeRepository,
    ObservationRepository,
    RemoteGatewayPort,
    SyncProgressSink,
)
from app.domain.services import now_ms
from app.domain.sync_models import SyncProgress, UploadResult

logger = logging.getLogger(__name__)


@dataclass
class _Counters:
    total: int
    succeeded: int = 0
    failed: int = 0

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed


class UploadReconciler:
    """Pushes pending local changes to the server, one record at a time.

    The pending sets are read once at the start. Hikes go first so that
    observations created against a new hike can reference its remote id,
    then tombstones, then observations. A record that fails is left exactly
    as it was and is retried on the next run.
    """

    def __init__(
        self,
        hikes: HikeRepository,
        observations: ObservationRepository,
        gateway: RemoteGatewayPort,
        assets: AssetTransferPort,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._hikes = hikes
        self._observations = observations
        self._gateway = gateway
        self._assets = assets
        self._clock = clock

    def run(self, auth_token: str, user_id: str, sink: SyncProgressSink) -> UploadResult:
        pending_hikes = list(self._hikes.list_by_sync_state(SyncState.LOCAL))
        tombstones = list(self._hikes.list_deleted())
        pending_observations = list(self._observations.list_by_sync_state(SyncState.LOCAL))

        total = len(pending_hikes) + len(tombstones) + len(pending_observations)
        if total == 0:
            logger.info("Nothing to upload")
            return UploadResult()

        started = time.monotonic()
        counters = _Counters(total=total)
        sink.on_started(total)
        logger.info(
            "Upload started",
            extra={
                "extra": {
                    "hikes": len(pending_hikes),
                    "deletions": len(tombstones),
                    "observations": len(pending_observations),
                }
            },
        )

        for hike in pending_hikes:
            self._count(counters, self._upload_hike(auth_token, user_id, hike))
            sink.on_progress(SyncProgress(counters.processed, total))

        for tombstone in tombstones:
            self._count(counters, self._push_deletion(auth_token, tombstone))
            sink.on_progress(SyncProgress(counters.processed, total))

        for observation in pending_observations:
            self._count(counters, self._upload_observation(auth_token, user_id, observation))
            sink.on_progress(SyncProgress(counters.processed, total))

        return UploadResult(
            total=total,
            succeeded=counters.succeeded,
            failed=counters.failed,
            skipped=0,
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    @staticmethod
    def _count(counters: _Counters, ok: bool) -> None:
        if ok:
            counters.succeeded += 1
        else:
            counters.failed += 1

    def _upload_hike(self, auth_token: str, user_id: str, hike: Hike) -> bool:
        payload = build_hike_payload(hike, user_id)
        try:
            if hike.remote_id:
                self._gateway.update_hike(auth_token, hike.remote_id, payload)
                remote_id = hike.remote_id
            else:
                remote_id = self._gateway.create_hike(auth_token, payload)
            self._hikes.update(
                replace(hike, remote_id=remote_id, sync_state=SyncState.SYNCED, updated_at=self._clock())
            )
        except AppError as error:
            logger.warning(
                "Hike upload failed",
                extra={"extra": {"hike_id": hike.id, **describe_error(error)}},
            )
            return False
        logger.info("Hike uploaded", extra={"extra": {"hike_id": hike.id, "remote_id": remote_id}})
        return True

    def _push_deletion(self, auth_token: str, hike: Hike) -> bool:
        try:
            if hike.remote_id:
                self._gateway.delete_hike(auth_token, hike.remote_id)
            self._hikes.permanently_delete(hike.id)
        except AppError as error:
            logger.warning(
                "Hike deletion failed",
                extra={"extra": {"hike_id": hike.id, "remote_id": hike.remote_id, **describe_error(error)}},
            )
            return False
        logger.info("Hike deletion pushed", extra={"extra": {"hike_id": hike.id, "remote_id": hike.remote_id}})
        return True

    def _upload_observation(self, auth_token: str, user_id: str, observation: Observation) -> bool:
        try:
            parent = self._hikes.get_by_id(observation.hike_id)
        except AppError as error:
            logger.warning(
                "Observation parent lookup failed",
                extra={"extra": {"observation_id": observation.id, **describe_error(error)}},
            )
            return False
        if parent is None or not parent.remote_id:
            logger.warning(
                "Observation skipped: parent hike is not on the server yet",
                extra={"extra": {"observation_id": observation.id, "hike_id": observation.hike_id}},
            )
            return False

        image_url = observation.cloud_image_url
        if image_url is None and observation.image_uri:
            image_url = self._assets.upload(observation.image_uri)
            if image_url is None:
                logger.warning(
                    "Observation image not uploaded; continuing without it",
                    extra={"extra": {"observation_id": observation.id}},
                )

        payload = build_observation_payload(
            observation,
            user_id=user_id,
            remote_hike_id=parent.remote_id,
            image_url=image_url,
        )
        try:
            if observation.remote_id:
                self._gateway.update_observation(auth_token, observation.remote_id, payload)
                remote_id = observation.remote_id
            else:
                remote_id = self._gateway.create_observation(auth_token, payload)
            self._observations.update(
                replace(
                    observation,
                    remote_id=remote_id,
                    cloud_image_url=image_url,
                    sync_state=SyncState.SYNCED,
                    updated_at=self._clock(),
                )
            )
        except AppError as error:
            logger.warning(
                "Observation upload failed",
                extra={"extra": {"observation_id": observation.id, **describe_error(error)}},
            )
            return False
        logger.info(
            "Observation uploaded",
            extra={"extra": {"observation_id": observation.id, "remote_id": remote_id}},
        )
        return True
