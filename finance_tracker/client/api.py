"""
api.py — async HTTP client for the entry endpoints used by the entry form.

Wraps an httpx.AsyncClient; the caller owns its lifecycle (base_url, transport).
Every non-2xx response becomes ApiError carrying the status and the server's
explanatory message from the {"error": {...}} envelope. Transport failures,
undecodable or non-JSON bodies become ApiError too. Nothing here retries.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

import httpx

from finance_tracker.client.dates import from_wire, to_wire

logger = logging.getLogger(__name__)

UNREADABLE_RESPONSE = "The server returned a response that could not be read."


class ApiError(Exception):
    """A failed API call. status_code is None for network failures."""

    def __init__(self, status_code: Optional[int], message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    @property
    def is_forbidden(self) -> bool:
        return self.status_code == 403


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str):
        return error
    return f"HTTP {response.status_code}"


class EntryApiClient:
    """
    Entry endpoints for one signed-in user.

    Entries come back as plain dicts exactly as the API serializes them
    (flat monetary fields as JSON numbers, entry_date as YYYY-MM-DD).
    """

    def __init__(self, http: httpx.AsyncClient, token: str) -> None:
        self._http = http
        self._headers = {"Authorization": f"Bearer {token}"}

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = await self._http.request(method, path, headers=self._headers, **kwargs)
        except httpx.TransportError as exc:
            logger.warning("Request failed %s %s: %s", method, path, type(exc).__name__)
            raise ApiError(None, "Unable to reach the server. Please check your connection.") from exc
        except httpx.HTTPError as exc:
            # decoding errors, redirect loops
            logger.warning("Request failed %s %s: %s", method, path, type(exc).__name__)
            raise ApiError(None, UNREADABLE_RESPONSE) from exc
        if not response.is_success:
            logger.info("API error %s %s status=%d", method, path, response.status_code)
            raise ApiError(response.status_code, _error_message(response))
        try:
            data = response.json()
        except ValueError as exc:
            logger.warning("Non-JSON response %s %s status=%d", method, path, response.status_code)
            raise ApiError(response.status_code, UNREADABLE_RESPONSE) from exc
        if not isinstance(data, dict):
            raise ApiError(response.status_code, UNREADABLE_RESPONSE)
        return data

    # --- reads -------------------------------------------------------------

    async def get_entry_by_date(self, profile_id: str, target: date) -> Optional[dict[str, Any]]:
        data = await self._request(
            "GET", f"/api/profiles/{profile_id}/entries/by-date", params={"date": to_wire(target)}
        )
        return data.get("entry")

    async def get_entry_before_date(self, profile_id: str, target: date) -> Optional[dict[str, Any]]:
        data = await self._request(
            "GET", f"/api/profiles/{profile_id}/entries/before-date", params={"date": to_wire(target)}
        )
        return data.get("entry")

    async def get_latest_entry(self, profile_id: str) -> Optional[dict[str, Any]]:
        data = await self._request("GET", f"/api/profiles/{profile_id}/entries/latest")
        return data.get("entry")

    async def list_entry_dates(self, profile_id: str) -> list[date]:
        data = await self._request("GET", f"/api/profiles/{profile_id}/entries/dates")
        return [from_wire(value) for value in data.get("dates", [])]

    # --- writes ------------------------------------------------------------

    async def create_entry(
        self,
        profile_id: str,
        entry_date: date,
        high_medium_risk: dict[str, Any],
        low_risk: dict[str, Any],
    ) -> dict[str, Any]:
        data = await self._request(
            "POST",
            f"/api/profiles/{profile_id}/entries",
            json={
                "entry_date": to_wire(entry_date),
                "high_medium_risk": high_medium_risk,
                "low_risk": low_risk,
            },
        )
        return data["entry"]

    async def update_entry(
        self,
        entry_id: str,
        high_medium_risk: dict[str, Any],
        low_risk: dict[str, Any],
    ) -> dict[str, Any]:
        data = await self._request(
            "PUT",
            f"/api/entries/{entry_id}",
            json={"high_medium_risk": high_medium_risk, "low_risk": low_risk},
        )
        return data["entry"]
