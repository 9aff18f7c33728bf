"""BridgeQuoteService prices raw quote responses and ranks them."""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from ...config import settings
from ...providers.base import ExchangeRateProvider, GasFeeProvider
from .constants import NATIVE_PLACEHOLDER
from .errors import InvalidAmountError
from .models import (
    ExchangeRates,
    GasFeeEstimates,
    Quote,
    QuoteResponse,
    QuoteWithMetadata,
    RankedQuotes,
    SortOrder,
)
from .quote import build_quote_metadata, to_decimal
from .ranking import rank_quotes

RateKey = Tuple[Any, str]


def _src_chain(quote: Quote) -> Optional[int]:
    return quote.src_chain_id if quote.src_chain_id is not None else quote.src_asset.chain_id


def _dest_chain(quote: Quote) -> Optional[int]:
    return quote.dest_chain_id if quote.dest_chain_id is not None else quote.dest_asset.chain_id


def _check_gas_fees(gas_fees: GasFeeEstimates) -> None:
    to_decimal(gas_fees.estimated_base_fee, "estimatedBaseFee")
    to_decimal(gas_fees.max_priority_fee_per_gas, "maxPriorityFeePerGas")
    if gas_fees.l1_gas_fee is not None:
        to_decimal(gas_fees.l1_gas_fee, "l1GasFee")


def _rate_keys(quote: Quote) -> Dict[str, RateKey]:
    src_chain, dest_chain = _src_chain(quote), _dest_chain(quote)
    return {
        "from_token": (src_chain, quote.src_asset.address.lower()),
        "from_native": (src_chain, NATIVE_PLACEHOLDER),
        "to_token": (dest_chain, quote.dest_asset.address.lower()),
        "to_native": (dest_chain, NATIVE_PLACEHOLDER),
    }


class BridgeQuoteService:
    """Resolves exchange rates and gas fees, then builds and ranks quote metadata.

    Missing rates or gas estimates never fail a ranking: the affected fiat
    figures are simply ``None``. Quote payloads that do not validate are
    dropped with a warning.
    """

    def __init__(
        self,
        *,
        rate_provider: Optional[ExchangeRateProvider] = None,
        gas_provider: Optional[GasFeeProvider] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._rates = rate_provider
        self._gas = gas_provider

    def parse_quote_responses(self, raw_quotes: Optional[Iterable[Any]]) -> List[QuoteResponse]:
        parsed: List[QuoteResponse] = []
        for index, raw in enumerate(raw_quotes or []):
            if isinstance(raw, QuoteResponse):
                parsed.append(raw)
                continue
            try:
                parsed.append(QuoteResponse.model_validate(raw))
            except ValidationError as exc:
                self._logger.warning("Dropping malformed quote #%d: %s", index, exc.errors()[:3])
        return parsed

    async def _safe_rate(self, chain_id: Any, address: str, currency: str) -> Optional[Decimal]:
        if self._rates is None or chain_id is None:
            return None
        try:
            return await self._rates.get_exchange_rate(chain_id, address, currency)
        except Exception as exc:  # noqa: BLE001
            self._logger.warning("Exchange rate lookup failed for %s on %s: %s", address, chain_id, exc)
            return None

    async def _safe_gas(self, chain_id: Any) -> Optional[GasFeeEstimates]:
        if self._gas is None or chain_id is None:
            return None
        try:
            return await self._gas.get_gas_fee_estimates(chain_id)
        except Exception as exc:  # noqa: BLE001
            self._logger.warning("Gas fee lookup failed for chain %s: %s", chain_id, exc)
            return None

    async def resolve_exchange_rates(
        self,
        quote_responses: List[QuoteResponse],
        currency: str,
    ) -> List[ExchangeRates]:
        """Rates for each quote, fetching every distinct (chain, asset) pair once."""
        keys_per_quote = [_rate_keys(response.quote) for response in quote_responses]
        unique: List[RateKey] = list(dict.fromkeys(key for keys in keys_per_quote for key in keys.values()))
        values = await asyncio.gather(*(self._safe_rate(chain, address, currency) for chain, address in unique))
        lookup = dict(zip(unique, values))
        return [ExchangeRates(**{name: lookup.get(key) for name, key in keys.items()}) for keys in keys_per_quote]

    def build_metadata(
        self,
        quote_responses: List[QuoteResponse],
        rates: List[ExchangeRates],
        gas_fees: Optional[GasFeeEstimates],
    ) -> List[QuoteWithMetadata]:
        quotes: List[QuoteWithMetadata] = []
        for response, quote_rates in zip(quote_responses, rates):
            try:
                quotes.append(build_quote_metadata(response, quote_rates, gas_fees))
            except InvalidAmountError as exc:
                self._logger.warning("Dropping quote %s: %s", response.quote.request_id, exc)
        return quotes

    async def get_ranked_quotes(
        self,
        raw_quotes: Optional[Iterable[Any]],
        sort_order: SortOrder = SortOrder.ADJUSTED_RETURN_DESC,
        *,
        currency: Optional[str] = None,
        exchange_rates: Optional[ExchangeRates] = None,
        gas_fees: Optional[GasFeeEstimates] = None,
    ) -> RankedQuotes:
        """Price and rank quote responses.

        Explicit ``exchange_rates``/``gas_fees`` apply to every quote and skip
        the corresponding provider lookups.

        Unparseable explicit gas fees raise :class:`InvalidAmountError` before
        any quote is priced.
        """
        if gas_fees is not None:
            _check_gas_fees(gas_fees)
        quote_responses = self.parse_quote_responses(raw_quotes)
        if not quote_responses:
            return RankedQuotes()
        currency = (currency or settings.display_currency).lower()

        if exchange_rates is not None:
            rates = [exchange_rates] * len(quote_responses)
        else:
            rates = await self.resolve_exchange_rates(quote_responses, currency)

        if gas_fees is None:
            gas_fees = await self._safe_gas(_src_chain(quote_responses[0].quote))

        quotes = self.build_metadata(quote_responses, rates, gas_fees)
        ranked = rank_quotes(quotes, sort_order)
        self._logger.info(
            "Ranked %d quotes (%s); recommended=%s",
            len(ranked.sorted_quotes),
            getattr(sort_order, "value", sort_order),
            ranked.recommended_quote.quote.request_id if ranked.recommended_quote else None,
        )
        return ranked
