"""Async HTTP client for the Double or Die API."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

logger = structlog.get_logger()


class ApiError(Exception):
    """Non-2xx response from the API, or status 0 when the API could not be reached."""

    def __init__(self, status_code: int, code: str, detail: str) -> None:
        self.status_code = status_code
        self.code = code
        self.detail = detail
        super().__init__(f"{status_code} {code}: {detail}")


class DoubleOrDieApi:
    """Thin wrapper over the REST endpoints. The caller owns the httpx client."""

    def __init__(self, http: httpx.AsyncClient, access_token: str | None = None) -> None:
        self.http = http
        self.access_token = access_token

    def _headers(self) -> dict[str, str]:
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        try:
            response = await self.http.request(method, path, json=json, headers=self._headers())
        except httpx.HTTPError as e:
            logger.warning("api_unreachable", method=method, path=path, error=str(e))
            raise ApiError(0, "network_error", str(e) or type(e).__name__) from e
        try:
            data = response.json()
        except ValueError:
            data = None
        if response.is_success:
            return data
        body = data if isinstance(data, dict) else {}
        raise ApiError(
            response.status_code,
            str(body.get("error", "http_error")),
            str(body.get("detail", response.reason_phrase)),
        )

    async def start_run(self) -> dict[str, Any]:
        return await self._request("POST", "/api/v1/runs/start")

    async def submit_run(self, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/api/v1/runs/submit", json=payload)

    async def get_leaderboard(self) -> dict[str, Any]:
        return await self._request("GET", "/api/v1/leaderboard")

    async def get_active_season(self) -> dict[str, Any] | None:
        return await self._request("GET", "/api/v1/seasons/active")

    async def get_my_rank(self) -> dict[str, Any] | None:
        if not self.access_token:
            return None
        return await self._request("GET", "/api/v1/leaderboard/me")
