from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from ..config.loader import DashboardConfig
from ..sources import PreNormalizedSource, RawTextSource, Source

"""HTTP transport for the sheet.

Two read shapes are supported:

- script backend (config.script_url): GET returns a JSON envelope
  ``{"success": bool, "data": [...], "message": str}``
- published sheet: GET the CSV export URL of sheet_id / sheet_gid

Writes (CREATE / UPDATE / DELETE) go to the script backend as a JSON body
sent with a text/plain content type, which the backend requires. Retries
are not attempted; a failed call raises TransportError.
"""

__all__ = [
    "ACTIONS",
    "TransportError",
    "SheetTransport",
]

logger = logging.getLogger(__name__)

ACTIONS = ("CREATE", "UPDATE", "DELETE")


class TransportError(Exception):
    """Network failure, non-success status or a failure envelope."""


def _build_httpx_client(timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout, follow_redirects=True)


def _read_envelope(response: httpx.Response, what: str) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as e:
        raise TransportError(f"{what}: response is not JSON") from e
    if not isinstance(payload, dict):
        raise TransportError(f"{what}: unexpected response shape {type(payload).__name__}")
    if not payload.get("success"):
        raise TransportError(f"{what}: {payload.get('message') or 'backend reported failure'}")
    return payload


class SheetTransport:
    """Fetches the sheet and forwards edits to the script backend.

    A client passed in by the caller is not closed by this object.
    """

    def __init__(self, config: DashboardConfig, client: httpx.AsyncClient | None = None) -> None:
        self.config = config
        self._owns_client = client is None
        self._client = client or _build_httpx_client(config.request_timeout)

    async def __aenter__(self) -> SheetTransport:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {url} failed: {e}") from e
        if not response.is_success:
            raise TransportError(f"{method} {url} returned HTTP {response.status_code}")
        return response

    async def fetch(self) -> Source:
        """Download the current sheet contents."""
        if self.config.script_url:
            response = await self._send(
                "GET", self.config.script_url, headers={"Cache-Control": "no-cache"}
            )
            payload = _read_envelope(response, "fetch")
            data = payload.get("data")
            if not isinstance(data, list):
                raise TransportError("fetch: envelope has no data list")
            logger.info(f"fetched {len(data)} row(s) from script backend")
            return PreNormalizedSource(rows=data)

        url = self.config.csv_export_url
        response = await self._send("GET", url)
        content_type = response.headers.get("content-type", "")
        if "text/html" in content_type:
            # 비공개 시트는 로그인 페이지(HTML)를 돌려준다
            raise TransportError(f"sheet {self.config.sheet_id} is not published as CSV")
        logger.info(f"fetched CSV export of sheet {self.config.sheet_id} ({len(response.text)} chars)")
        return RawTextSource(text=response.text, delimiter=self.config.delimiter)

    async def submit(self, action: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Send a CREATE / UPDATE / DELETE request to the script backend."""
        action = action.upper()
        if action not in ACTIONS:
            raise ValueError(f"unknown action: {action}")
        if not self.config.script_url:
            raise TransportError("submit: script_url is not configured")
        body = json.dumps({"action": action, **payload}, ensure_ascii=False)
        response = await self._send(
            "POST",
            self.config.script_url,
            content=body.encode("utf-8"),
            headers={"Content-Type": "text/plain;charset=utf-8"},
        )
        result = _read_envelope(response, action)
        logger.info(f"{action}: {result.get('message') or 'ok'}")
        return result
