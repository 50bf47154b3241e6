"""
Async client for the tracker backend API.

Every call takes the caller's verified credential explicitly and sends it as a
bearer token; nothing here reads ambient session state.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
import time
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from sq_portal.config import PortalConfig
from sq_portal.page_timing import record_api_time

logger = logging.getLogger(__name__)
timing_logger = logging.getLogger("uvicorn.error")


class ApiTransportError(RuntimeError):
    """Raised when the backend could not be reached or did not answer."""


class ApiStatusError(RuntimeError):
    def __init__(self, status_code: int, reason: str):
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"HTTP {status_code}: {reason}")


@dataclass(frozen=True)
class ApiResponse:
    status_code: int
    text: str

    @property
    def ok(self) -> bool:
        return self.status_code == 200


@dataclass(frozen=True)
class Announcement:
    id: str
    title: str
    body: str
    pinned: bool
    slug: str = ""

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], slug: str = "") -> "Announcement":
        announcement_id = str(payload.get("_id") or payload.get("id") or "").strip()
        if not announcement_id:
            raise ValueError("Announcement payload is missing its identifier.")
        return cls(
            id=announcement_id,
            title=str(payload.get("title") or ""),
            body=str(payload.get("body") or ""),
            pinned=bool(payload.get("pinned")),
            slug=str(payload.get("slug") or slug or ""),
        )


def _log_timing(event_name: str, start: float, **fields: object) -> None:
    elapsed_ms = (time.perf_counter() - start) * 1000.0
    field_text = " ".join(f"{key}={value}" for key, value in fields.items())
    timing_logger.info("api_client.timing event=%s ms=%.2f %s", event_name, elapsed_ms, field_text)


class TrackerApiClient:
    def __init__(
        self,
        config: PortalConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = config.api_url
        self._client = httpx.AsyncClient(
            base_url=config.api_url,
            timeout=config.api_timeout_seconds,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _headers(token: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }

    async def _request(
        self,
        method: str,
        path: str,
        token: str,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> ApiResponse:
        start = time.perf_counter()
        try:
            response = await self._client.request(
                method,
                path,
                headers=self._headers(token),
                json=json_body,
            )
        except httpx.HTTPError as exc:
            elapsed = time.perf_counter() - start
            record_api_time(elapsed)
            _log_timing("request.transport_error", start, method=method, path=path)
            message = str(exc) or exc.__class__.__name__
            raise ApiTransportError(message) from exc

        record_api_time(time.perf_counter() - start)
        _log_timing("request", start, method=method, path=path, status=response.status_code)
        return ApiResponse(status_code=response.status_code, text=response.text)

    async def fetch_announcement(self, slug: str, token: str) -> ApiResponse:
        return await self._request("GET", f"/announcements/{quote(slug, safe='')}", token)

    async def get_announcement(self, slug: str, token: str) -> Announcement:
        response = await self.fetch_announcement(slug, token)
        if not response.ok:
            raise ApiStatusError(response.status_code, response.text.strip())
        payload = json.loads(response.text)
        if not isinstance(payload, dict):
            raise ValueError("Announcement response is not a JSON object.")
        return Announcement.from_payload(payload, slug=slug)

    async def update_announcement(
        self,
        announcement_id: str,
        payload: Dict[str, Any],
        token: str,
    ) -> ApiResponse:
        return await self._request(
            "POST",
            f"/announcements/edit/{quote(announcement_id, safe='')}",
            token,
            json_body=payload,
        )

    async def upload_torrent(self, payload: Dict[str, Any], token: str) -> ApiResponse:
        return await self._request("POST", "/torrent/upload", token, json_body=payload)
