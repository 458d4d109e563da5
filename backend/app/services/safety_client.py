"""
Client for the upstream recruitment/safety API.

Only two read-only endpoints are consumed:

    GET /safety/family/{id}/status?includeLocation=true&includeHistory=true
    GET /safety/worker/{id}/location?includeHistory=true&days={n}

The upstream wraps payloads as {"success": ..., "data": ...}; callers get
the unwrapped `data` dict. Failures are mapped onto the service's error
taxonomy: 404 or an empty payload is NotFoundError, anything else that
goes wrong on the wire is TransportError.
"""

from typing import Any, Optional
from urllib.parse import quote

import httpx
import structlog

from app.config import get_settings
from app.exceptions import NotFoundError, TransportError

logger = structlog.get_logger(__name__)


class SafetyApiClient:
    """
    Async client with one pooled httpx connection per service instance.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        api_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.upstream_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.upstream_timeout_seconds
        token = api_token if api_token is not None else settings.upstream_api_token

        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=headers,
            transport=transport,
        )

    async def __aenter__(self) -> "SafetyApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    async def fetch_family_status(self, subject_id: str) -> dict[str, Any]:
        """
        Fetch the family-facing safety status of a worker.

        Returns:
            Dict with `status`, optional `lastCheckIn`, `location` and
            `locationHistory`.
        """
        return await self._get(
            f"/safety/family/{quote(subject_id, safe='')}/status",
            subject_id,
            params={"includeLocation": "true", "includeHistory": "true"},
        )

    async def fetch_worker_location(self, subject_id: str, days: int = 1) -> dict[str, Any]:
        """
        Fetch current location, history window and geo-fence status.

        Returns:
            Dict with `currentLocation`, `locationHistory`, optional
            `geoFenceStatus` and `stats`.
        """
        return await self._get(
            f"/safety/worker/{quote(subject_id, safe='')}/location",
            subject_id,
            params={"includeHistory": "true", "days": str(days)},
        )

    async def _get(self, path: str, subject_id: str, params: dict[str, str]) -> dict[str, Any]:
        try:
            response = await self._client.get(path, params=params)
        except httpx.RequestError as e:
            logger.error("Request error to safety API", path=path, error=str(e))
            raise TransportError(f"Request to {path} failed: {e}") from e

        if response.status_code == 404:
            raise NotFoundError(subject_id)

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "HTTP error from safety API",
                path=path,
                status=response.status_code,
            )
            raise TransportError(
                f"Safety API returned {response.status_code} for {path}",
                status_code=response.status_code,
            ) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise TransportError(f"Safety API returned invalid JSON for {path}") from e

        if not isinstance(payload, dict):
            raise TransportError(f"Unexpected payload type {type(payload).__name__} for {path}")

        if "data" in payload or "success" in payload:
            if payload.get("success") is False:
                raise TransportError(payload.get("message") or f"Safety API reported failure for {path}")
            payload = payload.get("data")

        if not payload:
            raise NotFoundError(subject_id)
        if not isinstance(payload, dict):
            raise TransportError(f"Unexpected data type {type(payload).__name__} for {path}")
        return payload
