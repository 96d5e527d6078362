from __future__ import annotations

import uuid
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any

_CORRELATION_ID: ContextVar[str | None] = ContextVar("correlation_id", default=None)
_RUN_ID: ContextVar[str | None] = ContextVar("run_id", default=None)


def generate_correlation_id() -> str:
    return str(uuid.uuid4())


def generate_run_id(operation_name: str) -> str:
    return f"{operation_name}-{uuid.uuid4().hex[:8]}"


def get_correlation_id() -> str | None:
    return _CORRELATION_ID.get()


def set_correlation_id(correlation_id: str | None) -> Token[str | None]:
    return _CORRELATION_ID.set(correlation_id)


def get_run_id() -> str | None:
    return _RUN_ID.get()


class OperationContext:
    """Tags every log record emitted inside the block with one sync run.

    ``correlation_id`` is a UUID4 shared with crash reports; ``run_id`` is a
    short readable id prefixed with the operation name. Both are context vars,
    so entering the block on a worker thread leaves the UI thread untouched.
    """

    def __init__(self, operation_name: str) -> None:
        self.operation_name = operation_name
        self.correlation_id = generate_correlation_id()
        self.run_id = generate_run_id(operation_name)
        self._tokens: list[tuple[ContextVar[str | None], Token[str | None]]] = []

    def __enter__(self) -> "OperationContext":
        self._tokens = [
            (_CORRELATION_ID, _CORRELATION_ID.set(self.correlation_id)),
            (_RUN_ID, _RUN_ID.set(self.run_id)),
        ]
        return self

    def __exit__(self, exc_type: object, exc: object, exc_tb: object) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)


def log_event(logger: Any, event_name: str, payload: dict[str, Any], correlation_id: str) -> dict[str, Any]:
    """Logs a named lifecycle event at INFO and returns the structured record."""
    event: dict[str, Any] = {
        "event": event_name,
        "correlation_id": correlation_id,
        "run_id": get_run_id(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "payload": payload,
    }
    logger.info(event_name, extra={"correlation_id": correlation_id, "extra": event})
    return event
