"""Async HTTP client for the booking API.

Used by the form wizard to submit bookings and by the admin CLI to list
bookings and change their status.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from moving.config import settings

log = logging.getLogger("moving.client")

# (field name, (filename, content, content type))
FilePart = tuple[str, tuple[str, bytes, str]]


class ApiError(Exception):
    """The booking API answered with an error, or could not be reached.

    ``status_code`` is 0 for transport failures.  ``errors`` carries the
    per-field validation errors of a 400 response.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        errors: Optional[list[dict[str, str]]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.errors = errors or []


class BookingClient:
    """Thin wrapper over the REST endpoints."""

    def __init__(
        self,
        base_url: str = "",
        token: str = "",
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.api_base_url, timeout=30
        )
        self._token = token

    async def __aenter__(self) -> "BookingClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        headers = kwargs.pop("headers", {})
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        try:
            resp = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            log.warning("%s %s failed: %s", method, path, exc)
            raise ApiError(0, f"Could not reach the booking service: {exc}") from exc

        if resp.is_error:
            raise self._error_from(resp)
        try:
            return resp.json()
        except ValueError as exc:
            log.warning("%s %s returned a non-JSON body (%d)", method, path, resp.status_code)
            raise ApiError(resp.status_code, "Booking service returned an invalid response") from exc

    @staticmethod
    def _error_from(resp: httpx.Response) -> ApiError:
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = body.get("message") or body.get("detail") or f"HTTP {resp.status_code}"
        return ApiError(resp.status_code, str(message), body.get("errors"))

    # ── Endpoints ─────────────────────────────────────────────

    async def create_booking(
        self, data: dict[str, str], files: Optional[list[FilePart]] = None
    ) -> dict[str, Any]:
        """POST a multipart booking submission."""
        return await self._request(
            "POST", "/api/bookings", data=data, files=files or None
        )

    async def list_bookings(self, status: Optional[str] = None) -> list[dict[str, Any]]:
        params = {"status": status} if status else None
        return await self._request("GET", "/api/bookings", params=params)

    async def get_booking(self, booking_id: int) -> dict[str, Any]:
        return await self._request("GET", f"/api/bookings/{booking_id}")

    async def update_status(self, booking_id: int, status: str) -> dict[str, Any]:
        return await self._request(
            "PATCH", f"/api/bookings/{booking_id}/status", json={"status": status}
        )
