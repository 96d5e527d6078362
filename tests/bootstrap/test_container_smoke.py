from __future__ import annotations

from pathlib import Path

from app.bootstrap.container import build_container
from app.domain.models import AuthSession
from app.infrastructure.db import get_connection
from hikelog_fakes import make_hike


def test_build_container_smoke(tmp_path: Path) -> None:
    container = build_container(data_dir=tmp_path)

    assert container.hike_use_cases is not None
    assert container.observation_use_cases is not None
    assert container.sync_engine is not None
    assert container.local_data_cleaner is not None
    assert (tmp_path / "hikelog.db").exists()
    container.connection.close()


def test_build_container_with_custom_connection_factory(tmp_path: Path) -> None:
    db_path = tmp_path / "smoke.db"

    container = build_container(lambda: get_connection(db_path), data_dir=tmp_path)

    tables = {
        row["name"] for row in container.connection.execute("SELECT name FROM sqlite_master WHERE type='table'")
    }
    assert {"hikes", "observations"} <= tables
    container.connection.close()


def test_current_session_reads_session_store(tmp_path: Path) -> None:
    container = build_container(data_dir=tmp_path)
    assert container.current_session() is None

    container.session_store.save(AuthSession(token="tok-1234", user_id="u1", username="ana"))

    assert container.current_session() == AuthSession(token="tok-1234", user_id="u1", username="ana")
    container.connection.close()


def test_engine_reports_offline_count_from_container(tmp_path: Path) -> None:
    container = build_container(data_dir=tmp_path)
    container.hike_use_cases.create_hike(make_hike())

    assert container.sync_engine.offline_hike_count() == 1
    container.connection.close()
