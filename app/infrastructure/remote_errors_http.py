from __future__ import annotations

import requests

from app.domain.remote_errors import (
    RemoteAuthError,
    RemoteRejectedError,
    RemoteResponseError,
    RemoteTransportError,
)


def _extract_error_text(response: requests.Response) -> str:
    text = getattr(response, "text", "") or ""
    return text.strip()[:200]


def classify_status(response: requests.Response, *, operation: str) -> Exception:
    status_code = response.status_code
    detail = _extract_error_text(response)
    message = f"{operation} rejected with HTTP {status_code}"
    if detail:
        message = f"{message}: {detail}"
    if status_code in {401, 403}:
        return RemoteAuthError(message, status_code)
    return RemoteRejectedError(message, status_code)


def map_requests_exception(ex: Exception, *, operation: str) -> Exception:
    if isinstance(ex, (RemoteTransportError, RemoteRejectedError, RemoteResponseError)):
        return ex
    if isinstance(ex, requests.exceptions.JSONDecodeError):
        return RemoteResponseError(f"{operation} returned an unreadable body")
    if isinstance(ex, requests.exceptions.Timeout):
        return RemoteTransportError(f"{operation} timed out")
    if isinstance(ex, requests.exceptions.ConnectionError):
        return RemoteTransportError(f"{operation} could not reach the server")
    if isinstance(ex, requests.exceptions.RequestException):
        return RemoteTransportError(f"{operation} failed: {ex}")
    if isinstance(ex, ValueError):
        return RemoteResponseError(f"{operation} returned an unreadable body")
    return ex
