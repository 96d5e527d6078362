from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from app.bootstrap.settings import resolve_data_dir
from app.domain.models import AuthSession, CloudConfig
from app.domain.ports import CloudConfigStorePort, SessionStorePort

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.json"
SESSION_FILE_NAME = "session.json"

DEFAULT_CLOUD_CONFIG = CloudConfig(
    api_base_url="http://localhost:3000/api",
    image_upload_url="https://api.cloudinary.com/v1_1/demo/image/upload",
    upload_preset="",
    upload_folder="observations",
    timeout_seconds=30.0,
)


def _read_json(path: Path) -> dict[str, Any] | None:
    if not path.exists():
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.exception("Could not read %s: %s", path.name, exc)
        return None
    if not isinstance(payload, dict):
        logger.error("Ignoring %s: expected a JSON object", path.name)
        return None
    return payload


def _write_json(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")


def _as_timeout(value: Any) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CLOUD_CONFIG.timeout_seconds
    return timeout if timeout > 0 else DEFAULT_CLOUD_CONFIG.timeout_seconds


class CloudConfigStore(CloudConfigStorePort):
    """Endpoints and upload settings from ``config.json``; missing keys fall back to defaults."""

    def __init__(self, base_dir: Path | None = None) -> None:
        self._base_dir = base_dir or resolve_data_dir()
        self._config_path = self._base_dir / CONFIG_FILE_NAME

    def load(self) -> CloudConfig:
        payload = _read_json(self._config_path) or {}
        defaults = DEFAULT_CLOUD_CONFIG
        return CloudConfig(
            api_base_url=str(payload.get("api_base_url") or defaults.api_base_url).strip(),
            image_upload_url=str(payload.get("image_upload_url") or defaults.image_upload_url).strip(),
            upload_preset=str(payload.get("upload_preset") or defaults.upload_preset).strip(),
            upload_folder=str(payload.get("upload_folder") or defaults.upload_folder).strip(),
            timeout_seconds=_as_timeout(payload.get("timeout_seconds", defaults.timeout_seconds)),
        )

    def save(self, config: CloudConfig) -> None:
        _write_json(
            self._config_path,
            {
                "api_base_url": config.api_base_url,
                "image_upload_url": config.image_upload_url,
                "upload_preset": config.upload_preset,
                "upload_folder": config.upload_folder,
                "timeout_seconds": config.timeout_seconds,
            },
        )


class SessionStore(SessionStorePort):
    """Bearer token and identity written by the login flow."""

    def __init__(self, base_dir: Path | None = None) -> None:
        self._base_dir = base_dir or resolve_data_dir()
        self._session_path = self._base_dir / SESSION_FILE_NAME

    def load(self) -> AuthSession | None:
        payload = _read_json(self._session_path)
        if payload is None:
            return None
        token = str(payload.get("token", "")).strip()
        user_id = str(payload.get("user_id", "")).strip()
        if not token or not user_id:
            return None
        return AuthSession(token=token, user_id=user_id, username=str(payload.get("username", "")).strip())

    def save(self, session: AuthSession) -> None:
        _write_json(
            self._session_path,
            {"token": session.token, "user_id": session.user_id, "username": session.username},
        )

    def clear(self) -> None:
        self._session_path.unlink(missing_ok=True)
