from __future__ import annotations

from dataclasses import replace

import pytest

from app.application.use_cases import HikeUseCases, ObservationUseCases, RecordNotFoundError
from app.core.errors import ValidationError
from app.domain.models import SyncState
from hikelog_fakes import make_hike, make_observation


class _Clock:
    def __init__(self, start: int = 1000) -> None:
        self.value = start

    def __call__(self) -> int:
        self.value += 1
        return self.value


@pytest.fixture
def clock() -> _Clock:
    return _Clock()


@pytest.fixture
def hikes(hike_repo, clock) -> HikeUseCases:
    return HikeUseCases(hike_repo, clock=clock)


@pytest.fixture
def observations(observation_repo, hike_repo, clock) -> ObservationUseCases:
    return ObservationUseCases(observation_repo, hike_repo, clock=clock)


def test_create_hike_forces_local_state(hikes) -> None:
    created = hikes.create_hike(make_hike(id=77, remote_id="forged", sync_state=SyncState.SYNCED))

    assert created.id != 77
    assert created.remote_id is None
    assert created.sync_state is SyncState.LOCAL
    assert created.created_at == created.updated_at == 1001
    assert [hike.id for hike in hikes.list_hikes()] == [created.id]


def test_create_hike_validates(hikes) -> None:
    with pytest.raises(ValidationError):
        hikes.create_hike(make_hike(name=""))


def test_editing_a_synced_hike_reverts_to_local_and_keeps_remote_id(hikes, hike_repo) -> None:
    synced = hike_repo.create(make_hike(remote_id="r1", sync_state=SyncState.SYNCED, created_at=5, updated_at=5))

    updated = hikes.update_hike(replace(synced, name="Renamed", remote_id=None, created_at=0))

    assert updated.name == "Renamed"
    assert updated.remote_id == "r1"
    assert updated.sync_state is SyncState.LOCAL
    assert updated.created_at == 5
    assert hike_repo.get_by_id(synced.id) == updated


def test_update_unknown_hike_raises_not_found(hikes) -> None:
    with pytest.raises(RecordNotFoundError):
        hikes.update_hike(make_hike(id=404))
    with pytest.raises(RecordNotFoundError):
        hikes.update_hike(make_hike())


def test_get_hike_not_found(hikes) -> None:
    with pytest.raises(RecordNotFoundError, match="Hike 9"):
        hikes.get_hike(9)


def test_deleting_unsynced_hike_removes_it(hikes, hike_repo) -> None:
    created = hikes.create_hike(make_hike())

    assert hikes.delete_hike(created.id) is True
    assert list(hike_repo.list_deleted()) == []


def test_deleting_synced_hike_leaves_tombstone(hikes, hike_repo) -> None:
    synced = hike_repo.create(make_hike(remote_id="r1", sync_state=SyncState.SYNCED))

    assert hikes.delete_hike(synced.id) is False
    assert list(hikes.list_hikes()) == []
    tombstone = hike_repo.get_by_remote_id("r1")
    assert tombstone.is_deleted
    assert tombstone.updated_at == 1001


def test_create_observation_requires_existing_hike(observations) -> None:
    with pytest.raises(RecordNotFoundError):
        observations.create_observation(make_observation(99))


def test_create_observation_forces_local_state(observations, hikes) -> None:
    hike = hikes.create_hike(make_hike())

    created = observations.create_observation(
        make_observation(hike.id, remote_id="forged", cloud_image_url="https://x", sync_state=SyncState.SYNCED)
    )

    assert (created.remote_id, created.cloud_image_url, created.sync_state) == (None, None, SyncState.LOCAL)
    assert list(observations.list_for_hike(hike.id)) == [created]


def test_update_observation_keeps_cloud_image_only_when_photo_unchanged(observations, observation_repo, hike_repo) -> None:
    hike = hike_repo.create(make_hike(remote_id="r1", sync_state=SyncState.SYNCED))
    stored = observation_repo.create(
        make_observation(
            hike.id,
            image_uri="file:///a.jpg",
            cloud_image_url="https://cdn/a.jpg",
            remote_id="o1",
            sync_state=SyncState.SYNCED,
        )
    )

    same_photo = observations.update_observation(replace(stored, title="Renamed"))
    assert same_photo.cloud_image_url == "https://cdn/a.jpg"
    assert same_photo.sync_state is SyncState.LOCAL
    assert same_photo.remote_id == "o1"

    new_photo = observations.update_observation(replace(same_photo, image_uri="file:///b.jpg"))
    assert new_photo.cloud_image_url is None


def test_update_and_delete_observation(observations, observation_repo, hikes) -> None:
    hike = hikes.create_hike(make_hike())
    created = observations.create_observation(make_observation(hike.id))

    with pytest.raises(RecordNotFoundError):
        observations.update_observation(replace(created, id=12345))

    observations.delete_observation(created.id)
    assert observation_repo.get_by_id(created.id) is None
