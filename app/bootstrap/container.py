from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

import requests

from app.application.use_cases import HikeUseCases, ObservationUseCases
from app.application.use_cases.sync_cloud.download_reconciler import DownloadReconciler
from app.application.use_cases.sync_cloud.engine import CloudSyncEngine
from app.application.use_cases.sync_cloud.status_reporter import SyncStatusReporter
from app.application.use_cases.sync_cloud.upload_reconciler import UploadReconciler
from app.bootstrap.settings import DATABASE_FILE_NAME, IMAGES_DIR_NAME, resolve_data_dir
from app.domain.models import AuthSession
from app.infrastructure.db import get_connection
from app.infrastructure.image_transfer_http import ImageTransferHttp
from app.infrastructure.local_config import CloudConfigStore, SessionStore
from app.infrastructure.local_data_cleaner import LocalDataCleaner
from app.infrastructure.migrations import run_migrations
from app.infrastructure.remote_gateway_http import RemoteGatewayHttp
from app.infrastructure.repos_sqlite import HikeRepositorySQLite, ObservationRepositorySQLite


@dataclass
class AppContainer:
    connection: sqlite3.Connection
    hike_use_cases: HikeUseCases
    observation_use_cases: ObservationUseCases
    sync_engine: CloudSyncEngine
    session_store: SessionStore
    config_store: CloudConfigStore
    local_data_cleaner: LocalDataCleaner

    def current_session(self) -> AuthSession | None:
        return self.session_store.load()


ConnectionFactory = Callable[[], sqlite3.Connection]


def build_container(
    connection_factory: ConnectionFactory | None = None,
    *,
    data_dir: Path | None = None,
    http_session: requests.Session | None = None,
) -> AppContainer:
    base_dir = data_dir or resolve_data_dir()
    images_dir = base_dir / IMAGES_DIR_NAME

    if connection_factory is None:
        connection = get_connection(base_dir / DATABASE_FILE_NAME)
    else:
        connection = connection_factory()
    run_migrations(connection)

    hike_repo = HikeRepositorySQLite(connection)
    observation_repo = ObservationRepositorySQLite(connection)

    config_store = CloudConfigStore(base_dir)
    session_store = SessionStore(base_dir)
    cloud_config = config_store.load()

    session = http_session or requests.Session()
    gateway = RemoteGatewayHttp(cloud_config, session=session)
    assets = ImageTransferHttp(cloud_config, images_dir, session=session)

    def _current_user_id() -> str | None:
        stored = session_store.load()
        return stored.user_id if stored else None

    sync_engine = CloudSyncEngine(
        uploader=UploadReconciler(hike_repo, observation_repo, gateway, assets),
        downloader=DownloadReconciler(hike_repo, observation_repo, gateway, assets),
        status_reporter=SyncStatusReporter(hike_repo),
        user_id_provider=_current_user_id,
    )

    return AppContainer(
        connection=connection,
        hike_use_cases=HikeUseCases(hike_repo),
        observation_use_cases=ObservationUseCases(observation_repo, hike_repo),
        sync_engine=sync_engine,
        session_store=session_store,
        config_store=config_store,
        local_data_cleaner=LocalDataCleaner(connection, images_dir, session_store),
    )
