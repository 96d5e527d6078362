from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Root of every failure HikeLog reports to a caller.

    ``retryable`` tells the sync layer whether the same call may succeed
    unchanged on a later run.
    """

    retryable = False


class BusinessError(AppError):
    pass


class ValidationError(BusinessError):
    """Input or state that the domain rules reject."""


class SyncAlreadyRunningError(BusinessError):
    """A second upload, download or status request arrived during an active run."""


class InfraError(AppError):
    pass


class PersistenceError(InfraError):
    """The local SQLite store failed or is missing the expected row."""


class ExternalServiceError(InfraError):
    """The cloud API or the asset store answered with something unusable."""


class TransientExternalError(ExternalServiceError):
    retryable = True


def describe_error(error: BaseException) -> dict[str, Any]:
    """Flat log fields for ``error``."""
    return {
        "error": str(error) or type(error).__name__,
        "error_type": type(error).__name__,
        "retryable": bool(getattr(error, "retryable", False)),
    }
