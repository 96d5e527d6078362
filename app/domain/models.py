from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SyncState(str, Enum):
    LOCAL = "LOCAL"
    SYNCED = "SYNCED"


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class Privacy(str, Enum):
    PRIVATE = "Private"
    PUBLIC = "Public"


class ObservationStatus(str, Enum):
    OPEN = "Open"
    VERIFIED = "Verified"
    DISPUTED = "Disputed"
    RESOLVED = "Resolved"


@dataclass(frozen=True)
class Hike:
    """A hike as stored on the device.

    ``id`` is assigned by the local store and is never reused; ``remote_id`` is
    the server identifier and stays ``None`` until the first successful upload.
    A tombstoned hike (``is_deleted``) is invisible to normal queries and only
    waits for the remote delete to be confirmed.
    """

    id: Optional[int]
    name: str
    location: str
    date: str
    time: str
    length: float
    difficulty: str = Difficulty.EASY.value
    parking_available: bool = False
    description: str = ""
    privacy: str = Privacy.PRIVATE.value
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    remote_id: Optional[str] = None
    sync_state: SyncState = SyncState.LOCAL
    is_deleted: bool = False
    created_at: int = 0
    updated_at: int = 0

    @property
    def is_synced(self) -> bool:
        return self.sync_state is SyncState.SYNCED


@dataclass(frozen=True)
class Observation:
    """Something noticed along a hike, optionally with a photo.

    ``image_uri`` points at the device copy of the photo and ``cloud_image_url``
    at the object-storage copy. ``status``, ``confirmations`` and ``disputes``
    are maintained by the server and only copied through by sync.
    """

    id: Optional[int]
    hike_id: int
    title: str
    time: str = ""
    comments: str = ""
    image_uri: Optional[str] = None
    cloud_image_url: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: str = ObservationStatus.OPEN.value
    confirmations: int = 0
    disputes: int = 0
    remote_id: Optional[str] = None
    sync_state: SyncState = SyncState.LOCAL
    created_at: int = 0
    updated_at: int = 0

    @property
    def is_synced(self) -> bool:
        return self.sync_state is SyncState.SYNCED


@dataclass(frozen=True)
class CloudConfig:
    api_base_url: str
    image_upload_url: str
    upload_preset: str
    upload_folder: str = "observations"
    timeout_seconds: float = 30.0


@dataclass(frozen=True)
class AuthSession:
    token: str
    user_id: str
    username: str = ""
