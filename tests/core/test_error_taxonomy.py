from __future__ import annotations

from app.core.errors import (
    AppError,
    PersistenceError,
    SyncAlreadyRunningError,
    TransientExternalError,
    ValidationError,
    describe_error,
)
from app.domain.remote_errors import RemoteAuthError, RemoteTransportError


def test_only_transient_failures_are_retryable() -> None:
    assert TransientExternalError("timeout").retryable is True
    assert RemoteTransportError("reset").retryable is True
    assert RemoteAuthError("denied", 401).retryable is False
    assert ValidationError("bad").retryable is False
    assert PersistenceError("disk").retryable is False


def test_sync_already_running_is_an_app_error() -> None:
    assert isinstance(SyncAlreadyRunningError("busy"), AppError)


def test_describe_error_flattens_for_logging() -> None:
    assert describe_error(RemoteTransportError("connection reset")) == {
        "error": "connection reset",
        "error_type": "RemoteTransportError",
        "retryable": True,
    }


def test_describe_error_falls_back_to_type_name() -> None:
    described = describe_error(KeyError())

    assert described["error"] == "KeyError"
    assert described["retryable"] is False
