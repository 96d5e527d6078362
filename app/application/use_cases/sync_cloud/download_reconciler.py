from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from app.application.use_cases.sync_cloud.payloads import hike_from_remote, observation_from_remote, remote_id_of
from app.core.errors import AppError, describe_error
from app.domain.ports import (
    AssetTransferPort,
    HikeRepository,
    ObservationRepository,
    RemoteGatewayPort,
    SyncProgressSink,
)
from app.domain.services import now_ms
from app.domain.sync_models import DownloadResult, SyncProgress

logger = logging.getLogger(__name__)


@dataclass
class _Counters:
    inserted: int = 0
    failed: int = 0
    skipped_duplicate: int = 0


class DownloadReconciler:
    """Brings remote hikes that this device has never seen into the local store.

    Records already known by remote id, tombstones included, are skipped and
    never overwritten, so running twice against unchanged data inserts
    nothing the second time.
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

    def run(self, auth_token: str, sink: SyncProgressSink) -> DownloadResult:
        started = time.monotonic()
        remote_hikes = self._fetch_remote_hikes(auth_token)
        total = len(remote_hikes)
        sink.on_started(total)

        counters = _Counters()
        for index, record in enumerate(remote_hikes, start=1):
            self._download_hike(auth_token, record, counters)
            sink.on_progress(SyncProgress(index, total))

        return DownloadResult(
            total_fetched=total,
            inserted=counters.inserted,
            failed=counters.failed,
            skipped_duplicate=counters.skipped_duplicate,
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    def _fetch_remote_hikes(self, auth_token: str) -> list[dict[str, Any]]:
        try:
            return list(self._gateway.list_my_hikes(auth_token))
        except AppError as error:
            logger.warning(
                "Remote hike list unavailable; treating as empty",
                extra={"extra": describe_error(error)},
            )
            return []

    def _download_hike(self, auth_token: str, record: dict[str, Any], counters: _Counters) -> None:
        remote_id = remote_id_of(record)
        if remote_id is None:
            logger.warning("Remote hike without id ignored", extra={"extra": {"name": record.get("name")}})
            counters.failed += 1
            return

        try:
            if self._hikes.get_by_remote_id(remote_id) is not None:
                counters.skipped_duplicate += 1
                return
            local_hike = self._hikes.create(hike_from_remote(record, remote_id, self._clock()))
        except AppError as error:
            logger.warning(
                "Remote hike could not be stored",
                extra={"extra": {"remote_id": remote_id, **describe_error(error)}},
            )
            counters.failed += 1
            return

        counters.inserted += 1
        logger.info("Hike downloaded", extra={"extra": {"remote_id": remote_id, "hike_id": local_hike.id}})
        self._download_observations(auth_token, remote_id, local_hike.id, counters)

    def _download_observations(
        self,
        auth_token: str,
        remote_hike_id: str,
        local_hike_id: int,
        counters: _Counters,
    ) -> None:
        try:
            records = list(self._gateway.list_observations_for_hike(auth_token, remote_hike_id))
        except AppError as error:
            logger.warning(
                "Remote observations unavailable; treating as empty",
                extra={"extra": {"remote_hike_id": remote_hike_id, **describe_error(error)}},
            )
            return

        for record in records:
            remote_id = remote_id_of(record)
            if remote_id is None:
                logger.warning("Remote observation without id ignored", extra={"extra": {"hike": remote_hike_id}})
                counters.failed += 1
                continue
            local_image: str | None = None
            try:
                if self._observations.get_by_remote_id(remote_id) is not None:
                    counters.skipped_duplicate += 1
                    continue
                image_url = record.get("imageUrl") or record.get("image_url")
                local_image = self._assets.download(str(image_url)) if image_url else None
                self._observations.create(
                    observation_from_remote(
                        record,
                        remote_id=remote_id,
                        local_hike_id=local_hike_id,
                        local_image_path=local_image,
                        timestamp_ms=self._clock(),
                    )
                )
            except AppError as error:
                logger.warning(
                    "Remote observation could not be stored",
                    extra={"extra": {"remote_id": remote_id, **describe_error(error)}},
                )
                if local_image:
                    Path(local_image).unlink(missing_ok=True)
                counters.failed += 1
                continue
            counters.inserted += 1
