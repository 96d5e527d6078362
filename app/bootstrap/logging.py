from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from app.core.observability import get_correlation_id, get_run_id
from app.core.secret_redaction import LoggingSecretsFilter

DEFAULT_LOG_MAX_BYTES = 1_048_576
DEFAULT_LOG_BACKUP_COUNT = 10
MAIN_LOG_NAME = "hikelog.log"
OPERATIONAL_ERROR_LOG_NAME = "operational_errors.log"
CRASH_LOG_NAME = "crash.log"


class JsonLinesFormatter(logging.Formatter):
    """One JSON object per line; sync runs can be grepped by correlation or run id."""

    def format(self, record: logging.LogRecord) -> str:
        correlation_id = getattr(record, "correlation_id", None) or get_correlation_id()
        event: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
            "correlation_id": str(correlation_id) if correlation_id else None,
        }
        optional = {
            "run_id": get_run_id(),
            "incident_id": getattr(record, "incident_id", None),
            "extra": getattr(record, "extra", None),
            "exc_info": self.formatException(record.exc_info) if record.exc_info else None,
        }
        event.update({key: value for key, value in optional.items() if value})
        return json.dumps(event, ensure_ascii=False, default=str)


class LevelBandFilter(logging.Filter):
    """Accepts records whose level lies in ``[lowest, highest]``."""

    def __init__(self, lowest: int, highest: int = logging.CRITICAL) -> None:
        super().__init__()
        self._lowest = lowest
        self._highest = highest

    def filter(self, record: logging.LogRecord) -> bool:
        return self._lowest <= record.levelno <= self._highest


@dataclass(frozen=True)
class _LogFileSpec:
    file_name: str
    lowest: int | None
    highest: int = logging.CRITICAL


# ``lowest=None`` follows the level passed to configure_logging.
_LOG_FILES = (
    _LogFileSpec(MAIN_LOG_NAME, lowest=None),
    _LogFileSpec(OPERATIONAL_ERROR_LOG_NAME, lowest=logging.ERROR, highest=logging.ERROR),
    _LogFileSpec(CRASH_LOG_NAME, lowest=logging.CRITICAL),
)


def _max_bytes_from_env() -> int:
    raw_value = os.getenv("HIKELOG_LOG_MAX_BYTES", "")
    return int(raw_value) if raw_value.strip().isdigit() else DEFAULT_LOG_MAX_BYTES


def _open_handler(path: Path, spec: _LogFileSpec, *, level: int, max_bytes: int, backup_count: int) -> logging.Handler:
    lowest = level if spec.lowest is None else spec.lowest
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    handler.setLevel(lowest)
    handler.setFormatter(JsonLinesFormatter())
    handler.addFilter(LoggingSecretsFilter())
    handler.addFilter(LevelBandFilter(lowest, spec.highest))
    return handler


def configure_logging(
    log_dir: Path,
    *,
    max_bytes: int | None = None,
    backup_count: int = DEFAULT_LOG_BACKUP_COUNT,
    level: int = logging.INFO,
) -> None:
    """Replaces the root handlers with the three rotating JSONL files in ``log_dir``.

    ``hikelog.log`` takes everything from ``level`` up, ``operational_errors.log``
    takes ERROR records only and ``crash.log`` takes CRITICAL ones. Every file
    passes through the secret redaction filter. ``HIKELOG_LOG_MAX_BYTES``
    overrides the rotation size when ``max_bytes`` is not given.
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    rotate_at = max_bytes or _max_bytes_from_env()

    root_logger = logging.getLogger()
    for stale in list(root_logger.handlers):
        root_logger.removeHandler(stale)
        stale.close()
    root_logger.setLevel(level)

    for spec in _LOG_FILES:
        root_logger.addHandler(
            _open_handler(
                log_dir / spec.file_name,
                spec,
                level=level,
                max_bytes=rotate_at,
                backup_count=backup_count,
            )
        )


def log_operational_error(
    logger: logging.Logger,
    message: str,
    *,
    exc: BaseException | None = None,
    extra: dict[str, Any] | None = None,
) -> None:
    logger.error(
        message,
        exc_info=(type(exc), exc, exc.__traceback__) if exc is not None else False,
        extra={"extra": extra} if extra else None,
    )


def install_exception_hook(log_dir: Path) -> None:
    """Routes uncaught exceptions to ``crash.log`` with interpreter details attached."""

    def _log_crash(exc_type, exc, tb) -> None:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            logging.getLogger("app.crash").critical(
                "Unhandled exception",
                exc_info=(exc_type, exc, tb),
                extra={"extra": {"python": sys.version, "executable": sys.executable, "cwd": str(Path.cwd())}},
            )
        except OSError:
            sys.__excepthook__(exc_type, exc, tb)

    sys.excepthook = _log_crash
