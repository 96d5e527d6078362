from __future__ import annotations

import importlib
import logging
import os
import platform
import sqlite3
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
TESTS_DIR = Path(__file__).resolve().parent
for _path in (ROOT, TESTS_DIR):
    if str(_path) not in sys.path:
        sys.path.insert(0, str(_path))


def _is_linux_headless() -> bool:
    if platform.system() != "Linux":
        return False
    return not (os.environ.get("DISPLAY") or os.environ.get("WAYLAND_DISPLAY"))


if _is_linux_headless():
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
    os.environ.setdefault("QT_OPENGL", "software")


_UI_BACKEND_ERROR: str | None = None


def _detect_ui_backend_issue() -> str | None:
    try:
        importlib.import_module("PySide6")
        importlib.import_module("PySide6.QtCore")
        return None
    except Exception as exc:  # pragma: no cover - depends on the host
        return f"PySide6/Qt not available for UI tests: {exc}"


def pytest_configure(config: pytest.Config) -> None:
    global _UI_BACKEND_ERROR
    config.addinivalue_line("markers", "ui: PySide6 interface tests")
    config.addinivalue_line("markers", "headless_safe: runs without a display")
    _UI_BACKEND_ERROR = _detect_ui_backend_issue()


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    skip_ui = None
    if _UI_BACKEND_ERROR is not None:
        skip_ui = pytest.mark.skip(reason=_UI_BACKEND_ERROR)

    for item in items:
        if "tests/ui/" in item.nodeid:
            item.add_marker(pytest.mark.ui)
        if skip_ui is not None and "ui" in item.keywords:
            item.add_marker(skip_ui)


from app.infrastructure.migrations import run_migrations
from app.infrastructure.repos_sqlite import HikeRepositorySQLite, ObservationRepositorySQLite
from hikelog_fakes import FakeAssets, FakeGateway


@pytest.fixture
def connection() -> sqlite3.Connection:
    conn = sqlite3.connect(":memory:")
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON")
    run_migrations(conn)
    yield conn
    conn.close()


@pytest.fixture
def hike_repo(connection: sqlite3.Connection) -> HikeRepositorySQLite:
    return HikeRepositorySQLite(connection)


@pytest.fixture
def observation_repo(connection: sqlite3.Connection) -> ObservationRepositorySQLite:
    return ObservationRepositorySQLite(connection)


@pytest.fixture
def restore_root_logging():
    root_logger = logging.getLogger()
    saved_level = root_logger.level
    yield root_logger
    for handler in list(root_logger.handlers):
        if isinstance(handler, logging.FileHandler):
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(saved_level)



@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def assets() -> FakeAssets:
    return FakeAssets()
