from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class UploadResult:
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    duration_ms: int = 0

    @property
    def total_hikes(self) -> int:
        return self.total

    @property
    def successful_uploads(self) -> int:
        return self.succeeded

    @property
    def failed_uploads(self) -> int:
        return self.failed

    @property
    def skipped_hikes(self) -> int:
        return self.skipped

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DownloadResult:
    total_fetched: int = 0
    inserted: int = 0
    failed: int = 0
    skipped_duplicate: int = 0
    duration_ms: int = 0

    @property
    def total_downloaded(self) -> int:
        return self.total_fetched

    @property
    def successful_inserts(self) -> int:
        return self.inserted

    @property
    def failed_inserts(self) -> int:
        return self.failed

    @property
    def skipped_duplicates(self) -> int:
        return self.skipped_duplicate

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SyncStatusSnapshot:
    total_hikes: int
    synced_hikes: int
    offline_hikes: int
    sync_percentage: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SyncProgress:
    processed: int
    total: int
