"""Shared builders for bridge quote and status payloads."""

from decimal import Decimal
from typing import Any, Dict, Optional

import pytest

from bridgewatch.core.bridge.constants import NATIVE_PLACEHOLDER
from bridgewatch.core.bridge.models import (
    AmountValue,
    FiatValue,
    QuoteMetadata,
    QuoteResponse,
    QuoteWithMetadata,
    StartTrackingParams,
    StatusResponse,
)

USDC_MAINNET = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
WALLET = "0x50ac5cfcc81bb0872e85255d7079f8a529345d16"


def quote_payload(
    *,
    request_id: str = "req-1",
    src_native: bool = False,
    dest_native: bool = True,
    src_token_amount: str = "1000000000",
    dest_token_amount: str = "400000000000000000",
    fee_amount: str = "8750000",
    trade_value: str = "0x0",
    trade_gas_limit: Optional[int] = 200000,
    approval_gas_limit: Optional[int] = 50000,
    eta: float = 300,
    bridge_id: str = "across",
) -> Dict[str, Any]:
    src_asset = (
        {"address": NATIVE_PLACEHOLDER, "decimals": 18, "chainId": 1, "symbol": "ETH"}
        if src_native
        else {"address": USDC_MAINNET, "decimals": 6, "chainId": 1, "symbol": "USDC"}
    )
    dest_asset = (
        {"address": NATIVE_PLACEHOLDER, "decimals": 18, "chainId": 10, "symbol": "ETH"}
        if dest_native
        else {"address": "0x0b2c639c533813f4aa9d7837caf62653d097ff85", "decimals": 6, "chainId": 10, "symbol": "USDC"}
    )
    payload: Dict[str, Any] = {
        "quote": {
            "requestId": request_id,
            "srcChainId": 1,
            "destChainId": 10,
            "srcAsset": src_asset,
            "destAsset": dest_asset,
            "srcTokenAmount": src_token_amount,
            "destTokenAmount": dest_token_amount,
            "feeData": {"metabridge": {"amount": fee_amount, "asset": src_asset}},
            "bridgeId": bridge_id,
            "bridges": [bridge_id],
            "steps": [],
        },
        "trade": {
            "chainId": 1,
            "to": "0x0439e60f02a8900a951603950d8d4527f400c3f1",
            "from": WALLET,
            "value": trade_value,
            "data": "0x3ce33bff",
            "gasLimit": trade_gas_limit,
        },
        "estimatedProcessingTimeInSeconds": eta,
    }
    if approval_gas_limit is not None:
        payload["approval"] = {
            "chainId": 1,
            "to": USDC_MAINNET,
            "from": WALLET,
            "value": "0x0",
            "data": "0x095ea7b3",
            "gasLimit": approval_gas_limit,
        }
    return payload


@pytest.fixture
def make_quote_payload():
    return quote_payload


@pytest.fixture
def make_quote_response():
    def _make(**kwargs) -> QuoteResponse:
        return QuoteResponse.model_validate(quote_payload(**kwargs))

    return _make


@pytest.fixture
def make_ranked_quote():
    """Quote with a fixed adjusted return (``None`` for unpriced) and ETA."""

    def _make(request_id: str, adjusted_return: Optional[str], eta: float) -> QuoteWithMetadata:
        response = QuoteResponse.model_validate(quote_payload(request_id=request_id, eta=eta))
        fiat = Decimal(adjusted_return) if adjusted_return is not None else None
        metadata = QuoteMetadata(
            sent_amount=AmountValue(raw=Decimal("1"), fiat=None),
            to_token_amount=AmountValue(raw=Decimal("1"), fiat=fiat),
            total_network_fee=AmountValue(raw=Decimal("0"), fiat=Decimal("0") if fiat is not None else None),
            adjusted_return=FiatValue(fiat=fiat),
            swap_rate=Decimal("1"),
            cost=FiatValue(fiat=None),
        )
        return QuoteWithMetadata(quote_response=response, metadata=metadata)

    return _make


@pytest.fixture
def make_tracking_params():
    def _make(src_tx_hash: str = "0xsrc1", **overrides) -> StartTrackingParams:
        payload: Dict[str, Any] = {
            "statusRequest": {
                "srcChainId": 1,
                "srcTxHash": src_tx_hash,
                "bridgeId": "across",
                "destChainId": 10,
            },
            "quoteResponse": quote_payload(),
            "startTime": 1700000000000,
            "slippagePercentage": 0.5,
            "pricingData": {"amountSent": "1008.75", "amountSentInUsd": "1008.75"},
            "initialDestAssetBalance": "120000000000000000",
            "targetContractAddress": "0x0439e60f02a8900a951603950d8d4527f400c3f1",
            "account": WALLET,
        }
        payload.update(overrides)
        return StartTrackingParams.model_validate(payload)

    return _make


@pytest.fixture
def make_status():
    def _make(status: str = "PENDING", dest_tx_hash: Optional[str] = None, src_tx_hash: str = "0xsrc1") -> StatusResponse:
        payload: Dict[str, Any] = {
            "status": status,
            "srcChain": {"chainId": 1, "txHash": src_tx_hash},
            "bridge": "across",
        }
        if dest_tx_hash is not None:
            payload["destChain"] = {"chainId": 10, "txHash": dest_tx_hash}
        return StatusResponse.model_validate(payload)

    return _make
