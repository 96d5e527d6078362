from __future__ import annotations

import logging
from typing import Any

import requests

from app.domain.models import CloudConfig
from app.domain.ports import RemoteGatewayPort
from app.domain.remote_errors import RemoteResponseError
from app.infrastructure.remote_errors_http import classify_status, map_requests_exception

logger = logging.getLogger(__name__)


class RemoteGatewayHttp(RemoteGatewayPort):
    """JSON client for the hikes/observations REST resources.

    Every call is a single blocking request with the bearer token supplied by
    the caller; failures surface as ``app.domain.remote_errors`` exceptions and
    are never retried here.
    """

    def __init__(self, config: CloudConfig, session: requests.Session | None = None) -> None:
        self._base_url = config.api_base_url.rstrip("/")
        self._timeout = config.timeout_seconds
        self._session = session or requests.Session()
        self._api_calls = 0

    @property
    def api_calls(self) -> int:
        return self._api_calls

    def create_hike(self, auth_token: str, payload: dict[str, Any]) -> str:
        body = self._request("POST", "/hikes", auth_token, operation="create-hike", json_body=payload)
        return self._extract_id(body, operation="create-hike")

    def update_hike(self, auth_token: str, remote_id: str, payload: dict[str, Any]) -> None:
        self._request("PUT", f"/hikes/{remote_id}", auth_token, operation="update-hike", json_body=payload)

    def delete_hike(self, auth_token: str, remote_id: str) -> None:
        self._request("DELETE", f"/hikes/{remote_id}", auth_token, operation="delete-hike")

    def list_my_hikes(self, auth_token: str) -> list[dict[str, Any]]:
        body = self._request("GET", "/hikes/my", auth_token, operation="list-my-hikes")
        return self._expect_list(body, operation="list-my-hikes")

    def create_observation(self, auth_token: str, payload: dict[str, Any]) -> str:
        body = self._request("POST", "/observations", auth_token, operation="create-observation", json_body=payload)
        return self._extract_id(body, operation="create-observation")

    def update_observation(self, auth_token: str, remote_id: str, payload: dict[str, Any]) -> None:
        self._request(
            "PUT",
            f"/observations/{remote_id}",
            auth_token,
            operation="update-observation",
            json_body=payload,
        )

    def list_observations_for_hike(self, auth_token: str, remote_hike_id: str) -> list[dict[str, Any]]:
        body = self._request(
            "GET",
            f"/observations/hike/{remote_hike_id}",
            auth_token,
            operation="list-observations-for-hike",
        )
        return self._expect_list(body, operation="list-observations-for-hike")

    def _request(
        self,
        method: str,
        path: str,
        auth_token: str,
        *,
        operation: str,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        headers = {
            "Authorization": f"Bearer {auth_token}",
            "Accept": "application/json",
        }
        try:
            response = self._session.request(
                method,
                f"{self._base_url}{path}",
                json=json_body,
                headers=headers,
                timeout=self._timeout,
            )
            self._api_calls += 1
            if not 200 <= response.status_code < 300:
                raise classify_status(response, operation=operation)
            logger.debug("Remote call ok", extra={"extra": {"operation": operation, "status": response.status_code}})
            if not response.content:
                return None
            return response.json()
        except Exception as ex:  # noqa: BLE001
            mapped = map_requests_exception(ex, operation=operation)
            if mapped is ex:
                raise
            raise mapped from ex

    @staticmethod
    def _extract_id(body: Any, *, operation: str) -> str:
        if not isinstance(body, dict) or body.get("id") in (None, ""):
            raise RemoteResponseError(f"{operation} response has no id")
        return str(body["id"])

    @staticmethod
    def _expect_list(body: Any, *, operation: str) -> list[dict[str, Any]]:
        if not isinstance(body, list):
            raise RemoteResponseError(f"{operation} expected a JSON array")
        return [item for item in body if isinstance(item, dict)]
