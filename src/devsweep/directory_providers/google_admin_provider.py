"""Admin SDK Directory API provider implementing IDirectoryService over httpx."""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import quote

import httpx

from devsweep.core.exceptions import (
    FatalRemoteError,
    NotFoundError,
    RemoteError,
    TransientRemoteError,
)
from devsweep.models.directory import AccountState, MobileDevice, UnitPage

RATE_LIMIT_REASONS = frozenset({"rateLimitExceeded", "userRateLimitExceeded", "quotaExceeded"})


def _error_reason(resp: httpx.Response) -> tuple[str, str]:
    """Extract (reason, message) from a Google API error body."""
    try:
        error = resp.json().get("error", {})
    except ValueError:
        return "", resp.text[:200]
    if not isinstance(error, dict):
        return "", str(error)
    reasons = [e.get("reason", "") for e in error.get("errors", []) if isinstance(e, dict)]
    return (reasons[0] if reasons else ""), error.get("message", "")


def classify_response(resp: httpx.Response) -> RemoteError:
    """Map a failed response to the devsweep remote error taxonomy."""
    status = resp.status_code
    reason, message = _error_reason(resp)
    detail = f"HTTP {status} {reason or resp.reason_phrase}: {message}".strip()
    if status == 404:
        return NotFoundError(detail)
    if status == 429 or (status == 403 and reason in RATE_LIMIT_REASONS):
        return TransientRemoteError(detail, signal="rate_limit", status_code=status)
    if status == 500:
        return TransientRemoteError(detail, signal="internal_error", status_code=status)
    if status in (502, 503, 504) or reason == "backendError":
        return TransientRemoteError(detail, signal="backend_error", status_code=status)
    return FatalRemoteError(detail)


class GoogleAdminDirectory:
    """Production IDirectoryService backed by the Admin SDK Directory API."""

    def __init__(self, access_token: str, *,
                 base_url: str = "https://admin.googleapis.com/admin/directory/v1",
                 customer_id: str = "my_customer", timeout: float = 30.0,
                 page_size: int = 100, transport: httpx.AsyncBaseTransport | None = None) -> None:
        if not access_token:
            raise ValueError("Directory access token is required")
        self._customer_id = customer_id
        self._page_size = page_size
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise TransientRemoteError(f"{method} {url}: {exc!r}", signal="backend_error") from exc
        if resp.is_error:
            raise classify_response(resp)
        return resp

    # ---- IDirectoryService methods ----

    async def get_account_state(self, item: str) -> AccountState:
        resp = await self._request(
            "GET", f"/users/{quote(item)}", params={"fields": "primaryEmail,suspended"},
        )
        body = resp.json()
        return AccountState(email=body.get("primaryEmail", item), deactivated=bool(body.get("suspended")))

    async def list_dependent_units(self, item: str, page_token: Optional[str] = None) -> UnitPage:
        params: dict[str, Any] = {"query": f"email:{item}", "maxResults": self._page_size}
        if page_token:
            params["pageToken"] = page_token
        resp = await self._request(
            "GET", f"/customer/{self._customer_id}/devices/mobile", params=params,
        )
        body = resp.json()
        return UnitPage(
            units=[MobileDevice.model_validate(d) for d in body.get("mobiledevices", [])],
            next_page_token=body.get("nextPageToken"),
        )

    async def remove_unit(self, unit_id: str) -> None:
        await self._request(
            "DELETE", f"/customer/{self._customer_id}/devices/mobile/{quote(unit_id)}",
        )

    async def list_deactivated_accounts(self) -> list[str]:
        params: dict[str, Any] = {
            "customer": self._customer_id,
            "query": "isSuspended=true",
            "maxResults": 500,
            "fields": "users(primaryEmail),nextPageToken",
        }
        emails: list[str] = []
        while True:
            body = (await self._request("GET", "/users", params=params)).json()
            emails.extend(u["primaryEmail"] for u in body.get("users", []) if u.get("primaryEmail"))
            token = body.get("nextPageToken")
            if not token:
                return emails
            params["pageToken"] = token
