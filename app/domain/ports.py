from __future__ import annotations

from typing import Any, Iterable, Protocol

from app.domain.models import AuthSession, CloudConfig, Hike, Observation, SyncState
from app.domain.sync_models import SyncProgress


class HikeRepository(Protocol):
    def create(self, hike: Hike) -> Hike:
        ...

    def update(self, hike: Hike) -> Hike:
        ...

    def get_by_id(self, hike_id: int) -> Hike | None:
        ...

    def get_by_remote_id(self, remote_id: str) -> Hike | None:
        ...

    def list_all(self) -> Iterable[Hike]:
        ...

    def list_by_sync_state(self, sync_state: SyncState) -> Iterable[Hike]:
        ...

    def list_deleted(self) -> Iterable[Hike]:
        ...

    def mark_deleted(self, hike_id: int, updated_at: int) -> None:
        ...

    def permanently_delete(self, hike_id: int) -> None:
        ...

    def count_by_sync_state(self, sync_state: SyncState | None = None) -> int:
        ...


class ObservationRepository(Protocol):
    def create(self, observation: Observation) -> Observation:
        ...

    def update(self, observation: Observation) -> Observation:
        ...

    def get_by_id(self, observation_id: int) -> Observation | None:
        ...

    def get_by_remote_id(self, remote_id: str) -> Observation | None:
        ...

    def list_for_hike(self, hike_id: int) -> Iterable[Observation]:
        ...

    def list_by_sync_state(self, sync_state: SyncState) -> Iterable[Observation]:
        ...

    def delete(self, observation_id: int) -> None:
        ...


class RemoteGatewayPort(Protocol):
    def create_hike(self, auth_token: str, payload: dict[str, Any]) -> str:
        ...

    def update_hike(self, auth_token: str, remote_id: str, payload: dict[str, Any]) -> None:
        ...

    def delete_hike(self, auth_token: str, remote_id: str) -> None:
        ...

    def list_my_hikes(self, auth_token: str) -> list[dict[str, Any]]:
        ...

    def create_observation(self, auth_token: str, payload: dict[str, Any]) -> str:
        ...

    def update_observation(self, auth_token: str, remote_id: str, payload: dict[str, Any]) -> None:
        ...

    def list_observations_for_hike(self, auth_token: str, remote_hike_id: str) -> list[dict[str, Any]]:
        ...


class AssetTransferPort(Protocol):
    def upload(self, local_image_ref: str) -> str | None:
        ...

    def download(self, remote_url: str) -> str | None:
        ...


class SyncProgressSink(Protocol):
    def on_started(self, total: int) -> None:
        ...

    def on_progress(self, progress: SyncProgress) -> None:
        ...

    def on_success(self, result: Any) -> None:
        ...

    def on_error(self, message: str, error: BaseException | None = None) -> None:
        ...


class CloudConfigStorePort(Protocol):
    def load(self) -> CloudConfig:
        ...

    def save(self, config: CloudConfig) -> None:
        ...


class SessionStorePort(Protocol):
    def load(self) -> AuthSession | None:
        ...

    def save(self, session: AuthSession) -> None:
        ...

    def clear(self) -> None:
        ...
