"""Suggested fee-per-gas estimates from the gas API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import settings
from ..core.bridge.constants import SUGGESTED_GAS_FEES_PATH
from ..core.bridge.models import GasFeeEstimates
from .base import ChainId, GasFeeProvider

logger = logging.getLogger(__name__)


class GasApiProvider(GasFeeProvider):
    name = "gas_api"
    timeout_s = 10

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        preferred_estimate: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.gas_api_base_url).rstrip("/")
        self.preferred_estimate = preferred_estimate or settings.bridge_preferred_gas_estimate
        self._transport = transport

    async def ready(self) -> bool:
        return settings.enable_gas_api

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {"status": "unavailable", "reason": "Provider disabled"}
        estimates = await self.get_gas_fee_estimates(1)
        if estimates is None:
            return {"status": "error", "reason": "No estimates for chain 1"}
        return {"status": "healthy"}

    async def get_gas_fee_estimates(self, chain_id: ChainId) -> Optional[GasFeeEstimates]:
        if not await self.ready() or not isinstance(chain_id, int):
            return None

        path = SUGGESTED_GAS_FEES_PATH.format(chain_id=chain_id)
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_s,
                transport=self._transport,
            ) as client:
                response = await client.get(path)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Gas fee lookup failed for chain %s: %s", chain_id, exc)
            return None

        base_fee = data.get("estimatedBaseFee")
        level = data.get(self.preferred_estimate) or {}
        priority_fee = level.get("suggestedMaxPriorityFeePerGas") if isinstance(level, dict) else None
        if base_fee is None or priority_fee is None:
            logger.debug("Incomplete gas estimates for chain %s: %s", chain_id, data)
            return None

        return GasFeeEstimates(
            estimated_base_fee=str(base_fee),
            max_priority_fee_per_gas=str(priority_fee),
        )
