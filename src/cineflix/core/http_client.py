from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Content-Type": "application/json"}


class ServiceCallError(RuntimeError):
    """A remote call failed.

    Transport failures and non-2xx responses share this type. ``status_code`` is
    None when no response was received.
    """

    def __init__(self, message: str, *, status_code: int | None = None, url: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url

    @property
    def is_transient(self) -> bool:
        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500


async def api_call(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    json: Any = None,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> Any:
    """Issue one JSON request and return the decoded body."""

    merged_headers = {**JSON_HEADERS, **(headers or {})}
    try:
        resp = await client.request(
            method, url, json=json, params=params, headers=merged_headers
        )
    except httpx.HTTPError as e:
        logger.error("API call failed: %s %s: %s", method, url, e)
        raise ServiceCallError(f"Request to {url} failed: {e}", url=url) from e

    if not resp.is_success:
        logger.error("API call failed: %s %s -> %s", method, url, resp.status_code)
        raise ServiceCallError(
            f"HTTP error! status: {resp.status_code}",
            status_code=resp.status_code,
            url=url,
        )

    try:
        return resp.json()
    except ValueError as e:
        logger.error("API call returned invalid JSON: %s %s", method, url)
        raise ServiceCallError(
            f"Invalid JSON from {url}", status_code=resp.status_code, url=url
        ) from e


class ServiceClient:
    """Binds a shared AsyncClient to one service's base URL."""

    name = "service"

    def __init__(self, client: httpx.AsyncClient, base_url: str) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")

    @property
    def base_url(self) -> str:
        return self._base_url

    async def _call(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        return await api_call(
            self._client, method, f"{self._base_url}{path}", json=json, params=params
        )

    async def health_check(self) -> Any:
        return await self._call("GET", "/health")
