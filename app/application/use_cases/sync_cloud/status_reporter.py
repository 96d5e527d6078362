from __future__ import annotations

from app.domain.models import SyncState
from app.domain.ports import HikeRepository
from app.domain.services import compute_sync_percentage
from app.domain.sync_models import SyncStatusSnapshot


class SyncStatusReporter:
    def __init__(self, hikes: HikeRepository) -> None:
        self._hikes = hikes

    def snapshot(self) -> SyncStatusSnapshot:
        total = self._hikes.count_by_sync_state()
        synced = self._hikes.count_by_sync_state(SyncState.SYNCED)
        return SyncStatusSnapshot(
            total_hikes=total,
            synced_hikes=synced,
            offline_hikes=total - synced,
            sync_percentage=compute_sync_percentage(synced, total),
        )

    def offline_hike_count(self) -> int:
        return self._hikes.count_by_sync_state(SyncState.LOCAL)
