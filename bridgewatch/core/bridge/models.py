"""Typed models used by the bridge subsystem.

Wire models mirror the bridge API payloads (camelCase on the wire, snake_case
in Python). Derived quote metadata uses plain dataclasses over ``Decimal``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .constants import NATIVE_PLACEHOLDER


class BridgeModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        frozen=True,
    )

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


# ---------------------------
# Quotes
# ---------------------------
class Asset(BridgeModel):
    address: str
    decimals: int = Field(..., ge=0, le=255)
    chain_id: Optional[int] = None
    symbol: Optional[str] = None
    name: Optional[str] = None

    @property
    def is_native(self) -> bool:
        return self.address.lower() == NATIVE_PLACEHOLDER


class FeeAmount(BridgeModel):
    amount: str = "0"
    asset: Optional[Asset] = None


class FeeData(BridgeModel):
    metabridge: FeeAmount = Field(default_factory=FeeAmount)


class Quote(BridgeModel):
    request_id: Optional[str] = None
    src_chain_id: Optional[int] = None
    dest_chain_id: Optional[int] = None
    src_asset: Asset
    dest_asset: Asset
    src_token_amount: str
    dest_token_amount: str
    fee_data: FeeData = Field(default_factory=FeeData)
    bridge_id: Optional[str] = None
    bridges: List[str] = Field(default_factory=list)
    steps: List[Dict[str, Any]] = Field(default_factory=list)


class TxData(BridgeModel):
    chain_id: Optional[int] = None
    to: Optional[str] = None
    from_address: Optional[str] = Field(default=None, alias="from")
    value: str = "0x0"
    data: Optional[str] = None
    gas_limit: Optional[int] = Field(default=None, ge=0)


class QuoteResponse(BridgeModel):
    quote: Quote
    trade: TxData
    approval: Optional[TxData] = None
    estimated_processing_time_in_seconds: float = Field(..., ge=0)


class SortOrder(str, Enum):
    ETA_ASC = "ETA_ASC"
    ADJUSTED_RETURN_DESC = "ADJUSTED_RETURN_DESC"


def _decimal_str(value: Optional[Decimal]) -> Optional[str]:
    if value is None:
        return None
    return format(value, "f")


@dataclass(frozen=True)
class AmountValue:
    """A raw on-chain quantity and its fiat value, either of which may be unknown."""

    raw: Optional[Decimal]
    fiat: Optional[Decimal] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"raw": _decimal_str(self.raw), "fiat": _decimal_str(self.fiat)}


@dataclass(frozen=True)
class FiatValue:
    fiat: Optional[Decimal] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"fiat": _decimal_str(self.fiat)}


@dataclass(frozen=True)
class QuoteMetadata:
    sent_amount: AmountValue
    to_token_amount: AmountValue
    total_network_fee: AmountValue
    adjusted_return: FiatValue
    swap_rate: Optional[Decimal]
    cost: FiatValue

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sentAmount": self.sent_amount.to_dict(),
            "toTokenAmount": self.to_token_amount.to_dict(),
            "totalNetworkFee": self.total_network_fee.to_dict(),
            "adjustedReturn": self.adjusted_return.to_dict(),
            "swapRate": _decimal_str(self.swap_rate),
            "cost": self.cost.to_dict(),
        }


@dataclass(frozen=True)
class QuoteWithMetadata:
    quote_response: QuoteResponse
    metadata: QuoteMetadata

    @property
    def quote(self) -> Quote:
        return self.quote_response.quote

    @property
    def estimated_processing_time_in_seconds(self) -> float:
        return self.quote_response.estimated_processing_time_in_seconds

    @property
    def adjusted_return_fiat(self) -> Optional[Decimal]:
        return self.metadata.adjusted_return.fiat

    def to_dict(self) -> Dict[str, Any]:
        return {**self.quote_response.to_payload(), **self.metadata.to_dict()}


@dataclass(frozen=True)
class ExchangeRates:
    """Fiat rates for the source and destination assets; ``None`` means unavailable."""

    from_token: Optional[Decimal] = None
    from_native: Optional[Decimal] = None
    to_token: Optional[Decimal] = None
    to_native: Optional[Decimal] = None


@dataclass(frozen=True)
class GasFeeEstimates:
    """Fee-per-gas estimates in decimal gwei."""

    estimated_base_fee: str
    max_priority_fee_per_gas: str
    l1_gas_fee: Optional[str] = None


@dataclass
class RankedQuotes:
    sorted_quotes: List[QuoteWithMetadata] = field(default_factory=list)
    recommended_quote: Optional[QuoteWithMetadata] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sortedQuotes": [quote.to_dict() for quote in self.sorted_quotes],
            "recommendedQuote": self.recommended_quote.to_dict() if self.recommended_quote else None,
        }


# ---------------------------
# Status tracking
# ---------------------------
class StatusTypes(str, Enum):
    PENDING = "PENDING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"
    UNKNOWN = "UNKNOWN"


class TrackingState(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    PENDING = "PENDING"
    COMPLETE = "COMPLETE"


class StatusRequest(BridgeModel):
    src_chain_id: int
    src_tx_hash: str = Field(..., min_length=1)
    bridge_id: str
    dest_chain_id: int

    def to_query_params(self) -> Dict[str, Any]:
        return {
            "srcChainId": self.src_chain_id,
            "srcTxHash": self.src_tx_hash,
            "bridgeId": self.bridge_id,
            "destChainId": self.dest_chain_id,
        }


class ChainStatus(BridgeModel):
    chain_id: int
    tx_hash: Optional[str] = None
    amount: Optional[str] = None
    token: Optional[Dict[str, Any]] = None


class StatusResponse(BridgeModel):
    status: StatusTypes
    src_chain: ChainStatus
    dest_chain: Optional[ChainStatus] = None
    bridge: Optional[str] = None
    is_expected_token: Optional[bool] = None
    is_unrecognized_router_address: Optional[bool] = None

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> Any:
        if isinstance(value, str):
            normalized = value.upper()
            if normalized in StatusTypes.__members__:
                return normalized
            return StatusTypes.UNKNOWN
        return value

    @property
    def is_complete(self) -> bool:
        return self.status == StatusTypes.COMPLETE


class BridgeHistoryItem(BridgeModel):
    """Submission-time context for one bridge transaction plus its latest status."""

    quote: Quote
    start_time: Optional[int] = None
    estimated_processing_time_in_seconds: float
    slippage_percentage: float
    completion_time: Optional[int] = None
    pricing_data: Optional[Dict[str, Any]] = None
    initial_dest_asset_balance: Optional[str] = None
    target_contract_address: Optional[str] = None
    account: Optional[str] = None
    status: Optional[StatusResponse] = None


class StartTrackingParams(BridgeModel):
    status_request: StatusRequest
    quote_response: QuoteResponse
    start_time: Optional[int] = None
    slippage_percentage: float = Field(..., ge=0)
    completion_time: Optional[int] = None
    pricing_data: Optional[Dict[str, Any]] = None
    initial_dest_asset_balance: Optional[str] = None
    target_contract_address: Optional[str] = None
    account: Optional[str] = None
