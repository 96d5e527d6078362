from __future__ import annotations

import logging
import time
from pathlib import Path

import requests

from app.domain.models import CloudConfig
from app.domain.ports import AssetTransferPort

logger = logging.getLogger(__name__)

_DOWNLOAD_CHUNK_BYTES = 64 * 1024


def _resolve_local_path(local_image_ref: str) -> Path | None:
    if not local_image_ref:
        return None
    raw = local_image_ref[len("file://"):] if local_image_ref.startswith("file://") else local_image_ref
    path = Path(raw)
    return path if path.is_file() else None


class ImageTransferHttp(AssetTransferPort):
    """Moves observation photos between the device and object storage.

    Both directions report failure as ``None``; a missing photo never fails
    the record it belongs to.
    """

    def __init__(
        self,
        config: CloudConfig,
        images_dir: Path,
        session: requests.Session | None = None,
    ) -> None:
        self._upload_url = config.image_upload_url
        self._upload_preset = config.upload_preset
        self._upload_folder = config.upload_folder
        self._timeout = config.timeout_seconds
        self._images_dir = images_dir
        self._session = session or requests.Session()

    def upload(self, local_image_ref: str) -> str | None:
        path = _resolve_local_path(local_image_ref)
        if path is None:
            logger.warning("Image not readable, skipping upload", extra={"extra": {"image": local_image_ref}})
            return None
        try:
            with path.open("rb") as handle:
                response = self._session.post(
                    self._upload_url,
                    files={"file": (path.name, handle, "image/jpeg")},
                    data={"upload_preset": self._upload_preset, "folder": self._upload_folder},
                    timeout=self._timeout,
                )
            if not 200 <= response.status_code < 300:
                logger.warning(
                    "Image upload rejected",
                    extra={"extra": {"image": path.name, "status": response.status_code}},
                )
                return None
            body = response.json()
        except (OSError, ValueError, requests.exceptions.RequestException) as ex:
            logger.warning("Image upload failed", extra={"extra": {"image": path.name, "error": str(ex)}})
            return None

        secure_url = body.get("secure_url") if isinstance(body, dict) else None
        if not secure_url:
            logger.warning("Image upload response has no secure_url", extra={"extra": {"image": path.name}})
            return None
        return str(secure_url)

    def download(self, remote_url: str) -> str | None:
        if not remote_url:
            return None
        target: Path | None = None
        try:
            with self._session.get(remote_url, stream=True, timeout=self._timeout) as response:
                if not 200 <= response.status_code < 300:
                    logger.warning(
                        "Image download rejected",
                        extra={"extra": {"url": remote_url, "status": response.status_code}},
                    )
                    return None
                self._images_dir.mkdir(parents=True, exist_ok=True)
                target = self._new_image_path()
                with target.open("wb") as handle:
                    for chunk in response.iter_content(chunk_size=_DOWNLOAD_CHUNK_BYTES):
                        if chunk:
                            handle.write(chunk)
        except (OSError, requests.exceptions.RequestException) as ex:
            logger.warning("Image download failed", extra={"extra": {"url": remote_url, "error": str(ex)}})
            if target is not None:
                target.unlink(missing_ok=True)
            return None
        return str(target)

    def _new_image_path(self) -> Path:
        stamp = time.time_ns()
        candidate = self._images_dir / f"observation_{stamp}.jpg"
        suffix = 1
        while candidate.exists():
            candidate = self._images_dir / f"observation_{stamp}_{suffix}.jpg"
            suffix += 1
        return candidate
