"""Async client for the bridge API transaction status endpoint."""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from ..config import settings
from ..core.bridge.constants import STATUS_PATH
from ..core.bridge.errors import StatusFetchError
from ..core.bridge.models import StatusRequest, StatusResponse
from .base import BridgeStatusProvider


class BridgeApiProvider(BridgeStatusProvider):
    """Thin wrapper around the bridge API ``/getTxStatus`` endpoint."""

    name = "bridge_api"

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout_s: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        configured = base_url or settings.bridge_api_base_url
        self.base_url = configured.rstrip("/")
        self.timeout_s = timeout_s or settings.request_timeout_seconds
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "accept": "application/json",
            "user-agent": "bridgewatch/0.1",
        }

    async def ready(self) -> bool:
        return bool(self.base_url)

    async def health_check(self) -> Dict[str, Any]:
        try:
            response = await self._request("GET", "/getAllFeatureFlags")
            return {"status": "healthy", "latency_ms": int(response.elapsed.total_seconds() * 1000)}
        except Exception as e:
            return {"status": "error", "reason": str(e)}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout_s, transport=self._transport) as client:
            response = await client.request(method, path, params=params, headers=self._headers())
        response.raise_for_status()
        return response

    async def fetch_tx_status(self, status_request: StatusRequest) -> StatusResponse:
        src_tx_hash = status_request.src_tx_hash
        try:
            response = await self._request("GET", STATUS_PATH, params=status_request.to_query_params())
        except httpx.HTTPStatusError as exc:
            detail = (exc.response.text or "").strip()[:200]
            raise StatusFetchError(
                f"Bridge status request failed with status {exc.response.status_code}: {detail}",
                src_tx_hash=src_tx_hash,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.RequestError as exc:
            raise StatusFetchError(
                f"Could not reach bridge API: {exc}",
                src_tx_hash=src_tx_hash,
            ) from exc

        try:
            return StatusResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise StatusFetchError(
                f"Unexpected bridge status payload: {exc}",
                src_tx_hash=src_tx_hash,
            ) from exc
