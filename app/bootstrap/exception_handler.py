from __future__ import annotations

import json
import logging
import traceback
import uuid
from datetime import datetime, timezone
from types import TracebackType

from app.bootstrap.logging import CRASH_LOG_NAME
from app.bootstrap.settings import resolve_log_dir
from app.core.observability import generate_correlation_id, get_correlation_id, set_correlation_id


def generate_incident_id() -> str:
    return "INC-" + uuid.uuid4().hex[:12].upper()


def _ensure_correlation_id() -> str:
    current = get_correlation_id()
    if not current:
        current = generate_correlation_id()
        set_correlation_id(current)
    return current


def _write_fallback_crash_log(
    *,
    incident_id: str,
    correlation_id: str,
    exc_type: type[BaseException],
    exc_value: BaseException,
    exc_traceback: TracebackType | None,
) -> None:
    """Appends the incident to ``crash.log`` directly, bypassing the logging tree."""
    record = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": "CRITICAL",
        "incident_id": incident_id,
        "correlation_id": correlation_id,
        "error_type": exc_type.__name__,
        "error_message": str(exc_value),
        "stacktrace": "".join(traceback.format_exception(exc_type, exc_value, exc_traceback)),
    }
    crash_path = resolve_log_dir() / CRASH_LOG_NAME
    with crash_path.open("a", encoding="utf-8") as stream:
        stream.write(json.dumps(record, ensure_ascii=False) + "\n")


def handle_global_exception(
    exc_type: type[BaseException], exc_value: BaseException, exc_traceback: TracebackType | None
) -> str:
    """Records a crash the CLI did not expect and returns the incident id printed to the user.

    If the configured handlers themselves fail, the incident is still appended
    to ``crash.log`` as a raw JSON line.
    """
    incident = {"incident_id": generate_incident_id(), "correlation_id": _ensure_correlation_id()}
    try:
        logging.getLogger("app.global_exception").critical(
            "Unhandled exception. incident_id=%s",
            incident["incident_id"],
            exc_info=(exc_type, exc_value, exc_traceback),
            extra=incident,
        )
    except Exception:  # noqa: BLE001
        _write_fallback_crash_log(
            exc_type=exc_type,
            exc_value=exc_value,
            exc_traceback=exc_traceback,
            **incident,
        )
    return incident["incident_id"]
