from __future__ import annotations

from app.core.errors import ExternalServiceError, TransientExternalError


class RemoteTransportError(TransientExternalError):
    pass


class RemoteRejectedError(ExternalServiceError):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteAuthError(RemoteRejectedError):
    pass


class RemoteResponseError(ExternalServiceError):
    pass
