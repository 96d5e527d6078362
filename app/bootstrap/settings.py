from __future__ import annotations

import os
import tempfile
from pathlib import Path

APP_DIR_NAME = "HikeLog"
DATABASE_FILE_NAME = "hikelog.db"
IMAGES_DIR_NAME = "observations"


def project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _first_writable(candidates: list[Path]) -> Path | None:
    for candidate in candidates:
        try:
            candidate.mkdir(parents=True, exist_ok=True)
            test_file = candidate / "_write_test.tmp"
            test_file.write_text("ok", encoding="utf-8")
            test_file.unlink(missing_ok=True)
            return candidate
        except OSError:
            continue
    return None


def resolve_data_dir() -> Path:
    """Directory holding config.json, session.json, the database and downloaded images."""
    candidates: list[Path] = []
    env_dir = os.environ.get("HIKELOG_DATA_DIR")
    if env_dir:
        candidates.append(Path(env_dir))
    candidates.append(Path.home() / ".local" / "share" / APP_DIR_NAME)
    candidates.append(Path(tempfile.gettempdir()) / APP_DIR_NAME)
    resolved = _first_writable(candidates)
    if resolved is None:
        raise OSError("No writable data directory available")
    return resolved


def resolve_database_path() -> Path:
    return resolve_data_dir() / DATABASE_FILE_NAME


def resolve_images_dir() -> Path:
    return resolve_data_dir() / IMAGES_DIR_NAME


def resolve_log_dir() -> Path:
    candidates: list[Path] = []
    env_dir = os.environ.get("HIKELOG_LOG_DIR")
    if env_dir:
        candidates.append(Path(env_dir))
    candidates.append(project_root() / "logs")
    candidates.append(Path(tempfile.gettempdir()) / APP_DIR_NAME / "logs")

    resolved = _first_writable(candidates)
    if resolved is not None:
        return resolved
    fallback = project_root()
    fallback.mkdir(parents=True, exist_ok=True)
    return fallback
