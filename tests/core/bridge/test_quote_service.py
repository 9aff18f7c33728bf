"""
Tests for BridgeQuoteService pricing and ranking.
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from bridgewatch.core.bridge.constants import NATIVE_PLACEHOLDER
from bridgewatch.core.bridge.errors import InvalidAmountError
from bridgewatch.core.bridge.models import ExchangeRates, GasFeeEstimates, SortOrder
from bridgewatch.core.bridge.service import BridgeQuoteService

USDC = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
RATES = {
    (1, USDC): Decimal("1"),
    (1, NATIVE_PLACEHOLDER): Decimal("2500"),
    (10, NATIVE_PLACEHOLDER): Decimal("2500"),
}
GAS = GasFeeEstimates(estimated_base_fee="20", max_priority_fee_per_gas="2")


def make_service(rates=None, gas=GAS):
    rate_provider = AsyncMock()
    lookup = RATES if rates is None else rates

    async def get_exchange_rate(chain_id, address, currency="usd"):
        return lookup.get((chain_id, address))

    rate_provider.get_exchange_rate.side_effect = get_exchange_rate
    gas_provider = AsyncMock()
    gas_provider.get_gas_fee_estimates.return_value = gas
    service = BridgeQuoteService(rate_provider=rate_provider, gas_provider=gas_provider)
    return service, rate_provider, gas_provider


class TestParsing:
    def test_malformed_quotes_are_dropped(self, make_quote_payload):
        service, _, _ = make_service()

        parsed = service.parse_quote_responses([make_quote_payload(), {"quote": {}}, "garbage", None])

        assert len(parsed) == 1
        assert parsed[0].quote.request_id == "req-1"

    def test_none_input(self):
        service, _, _ = make_service()

        assert service.parse_quote_responses(None) == []


class TestRanking:
    @pytest.mark.asyncio
    async def test_prices_quotes_through_providers(self, make_quote_payload):
        service, rate_provider, gas_provider = make_service()

        ranked = await service.get_ranked_quotes([make_quote_payload()], SortOrder.ADJUSTED_RETURN_DESC)

        assert len(ranked.sorted_quotes) == 1
        assert ranked.recommended_quote.adjusted_return_fiat == Decimal("986.25")
        gas_provider.get_gas_fee_estimates.assert_awaited_once_with(1)
        rate_provider.get_exchange_rate.assert_any_await(1, USDC, "usd")

    @pytest.mark.asyncio
    async def test_each_rate_is_fetched_once(self, make_quote_payload):
        service, rate_provider, _ = make_service()
        quotes = [make_quote_payload(request_id=f"req-{i}") for i in range(4)]

        ranked = await service.get_ranked_quotes(quotes)

        assert len(ranked.sorted_quotes) == 4
        # USDC on mainnet, ETH on mainnet, ETH on Optimism
        assert rate_provider.get_exchange_rate.await_count == 3

    @pytest.mark.asyncio
    async def test_currency_is_forwarded(self, make_quote_payload):
        service, rate_provider, _ = make_service()

        await service.get_ranked_quotes([make_quote_payload()], currency="EUR")

        for call in rate_provider.get_exchange_rate.await_args_list:
            assert call.args[2] == "eur"

    @pytest.mark.asyncio
    async def test_explicit_rates_and_gas_skip_providers(self, make_quote_payload):
        service, rate_provider, gas_provider = make_service()
        rates = ExchangeRates(from_token=Decimal("1"), from_native=Decimal("2000"), to_native=Decimal("2000"))

        ranked = await service.get_ranked_quotes([make_quote_payload()], exchange_rates=rates, gas_fees=GAS)

        rate_provider.get_exchange_rate.assert_not_awaited()
        gas_provider.get_gas_fee_estimates.assert_not_awaited()
        # 0.4 ETH at 2000 minus 0.0055 ETH gas at 2000
        assert ranked.recommended_quote.adjusted_return_fiat == Decimal("789")

    @pytest.mark.asyncio
    async def test_provider_failures_leave_fiat_unknown(self, make_quote_payload):
        service, rate_provider, gas_provider = make_service()
        rate_provider.get_exchange_rate.side_effect = RuntimeError("rate limited")
        gas_provider.get_gas_fee_estimates.side_effect = RuntimeError("gas api down")

        ranked = await service.get_ranked_quotes([make_quote_payload()])

        metadata = ranked.recommended_quote.metadata
        assert metadata.to_token_amount.raw == Decimal("0.4")
        assert metadata.to_token_amount.fiat is None
        assert metadata.total_network_fee.raw is None
        assert metadata.adjusted_return.fiat is None

    @pytest.mark.asyncio
    async def test_unparseable_quote_is_dropped(self, make_quote_payload):
        service, _, _ = make_service()
        quotes = [make_quote_payload(request_id="bad", src_token_amount="lots"), make_quote_payload(request_id="good")]

        ranked = await service.get_ranked_quotes(quotes)

        assert [quote.quote.request_id for quote in ranked.sorted_quotes] == ["good"]

    @pytest.mark.asyncio
    async def test_unparseable_gas_fee_fails_the_whole_request(self, make_quote_payload):
        service, rate_provider, _ = make_service()
        gas_fees = GasFeeEstimates(estimated_base_fee="abc", max_priority_fee_per_gas="1")

        with pytest.raises(InvalidAmountError) as exc_info:
            await service.get_ranked_quotes([make_quote_payload()], gas_fees=gas_fees)

        assert exc_info.value.field == "estimatedBaseFee"
        rate_provider.get_exchange_rate.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_quotes_skips_lookups(self):
        service, rate_provider, gas_provider = make_service()

        ranked = await service.get_ranked_quotes([])

        assert ranked.sorted_quotes == []
        assert ranked.recommended_quote is None
        rate_provider.get_exchange_rate.assert_not_awaited()
        gas_provider.get_gas_fee_estimates.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_service_without_providers(self, make_quote_payload):
        service = BridgeQuoteService()

        ranked = await service.get_ranked_quotes([make_quote_payload()], SortOrder.ETA_ASC)

        assert ranked.recommended_quote.adjusted_return_fiat is None
