import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional

import httpx

from ..cache import TTLCache, rate_cache
from ..config import settings
from ..core.bridge.constants import CHAIN_METADATA, NATIVE_PLACEHOLDER
from .base import ChainId, ExchangeRateProvider

logger = logging.getLogger(__name__)


class CoingeckoProvider(ExchangeRateProvider):
    """Coingecko API provider for token to fiat exchange rates"""

    name = "coingecko"
    timeout_s = 15

    def __init__(
        self,
        *,
        cache: Optional[TTLCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.coingecko_api_key
        self.base_url = settings.coingecko_base_url
        self._cache = cache if cache is not None else rate_cache
        self._transport = transport

    def _build_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self.api_key:
            headers["X-CG-Demo-API-Key"] = self.api_key
        return headers

    async def ready(self) -> bool:
        return settings.enable_coingecko  # API key is optional for basic tier

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {
                "status": "unavailable",
                "reason": "Provider disabled"
            }

        try:
            data = await self._get("/ping")
            return {"status": "healthy", "detail": data}
        except Exception as e:
            return {"status": "error", "reason": str(e)}

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.get(
                f"{self.base_url}{path}",
                headers=self._build_headers(),
                params=params,
                timeout=self.timeout_s
            )
            response.raise_for_status()
            return response.json()

    async def get_exchange_rate(
        self,
        chain_id: ChainId,
        token_address: str,
        currency: str = "usd",
    ) -> Optional[Decimal]:
        """Fiat rate for a token on ``chain_id``; ``None`` on any failure."""
        if not await self.ready():
            return None
        chain = CHAIN_METADATA.get(chain_id) if isinstance(chain_id, int) else None
        if chain is None:
            logger.debug("No Coingecko platform for chain %s", chain_id)
            return None

        address = (token_address or "").lower()
        currency = currency.lower()
        cache_key = f"{chain_id}:{address}:{currency}"
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            if address == NATIVE_PLACEHOLDER:
                coin_id = chain["native_coin_id"]
                data = await self._get(
                    "/simple/price",
                    {"ids": coin_id, "vs_currencies": currency},
                )
                raw_price = (data.get(coin_id) or {}).get(currency)
            else:
                data = await self._get(
                    f"/simple/token_price/{chain['platform']}",
                    {"contract_addresses": address, "vs_currencies": currency},
                )
                price_data = data.get(address) or data.get(token_address) or {}
                raw_price = price_data.get(currency)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Coingecko rate lookup failed for %s on chain %s: %s", address, chain_id, exc)
            return None

        if raw_price is None:
            return None
        try:
            rate = Decimal(str(raw_price))
        except (InvalidOperation, TypeError, ValueError):
            return None
        if not rate.is_finite() or rate <= 0:
            return None

        await self._cache.set(cache_key, rate)
        return rate
