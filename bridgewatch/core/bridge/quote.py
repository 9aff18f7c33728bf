"""Fee-adjusted quote metadata.

Every amount goes through ``Decimal`` in a context wide enough for uint256
values, so shifting by token decimals, gwei or wei never rounds. A fiat figure
is ``None`` whenever one of its inputs is unknown; nothing is coerced to zero.
"""

from __future__ import annotations

import re
from decimal import Context, Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP, localcontext
from typing import Any, Mapping, Optional, Union

from .constants import DECIMAL_PRECISION, GWEI_DECIMALS, NATIVE_DECIMALS
from .errors import InvalidAmountError
from .models import (
    AmountValue,
    ExchangeRates,
    FiatValue,
    GasFeeEstimates,
    Quote,
    QuoteMetadata,
    QuoteResponse,
    QuoteWithMetadata,
)

NumberLike = Union[str, int, Decimal]

_CONTEXT = Context(prec=DECIMAL_PRECISION)
_POSITIVE_INTEGER = re.compile(r"^[1-9]\d*$")


def to_decimal(value: Any, field: str = "value") -> Decimal:
    """Parse ``value`` as a finite decimal or raise :class:`InvalidAmountError`.

    Hex strings (``0x..``) are read as integers, which is how transaction
    values arrive from the bridge API.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidAmountError(field, value)
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, int):
        parsed = Decimal(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidAmountError(field, value)
        try:
            if text.lower().startswith("0x"):
                parsed = Decimal(int(text, 16))
            else:
                parsed = Decimal(text)
        except (InvalidOperation, ValueError):
            raise InvalidAmountError(field, value) from None
    else:
        raise InvalidAmountError(field, value)
    if not parsed.is_finite():
        raise InvalidAmountError(field, value)
    return parsed


def _rate(value: Optional[NumberLike], field: str) -> Optional[Decimal]:
    if value is None:
        return None
    return to_decimal(value, field)


def _fiat(amount: Optional[Decimal], rate: Optional[Decimal]) -> Optional[Decimal]:
    if amount is None or rate is None:
        return None
    return amount * rate


def calc_token_amount(value: NumberLike, decimals: int, field: str = "amount") -> Decimal:
    """Shift an integer amount in smallest units down by ``decimals``."""
    with localcontext(_CONTEXT):
        return to_decimal(value, field).scaleb(-int(decimals))


def calc_sent_amount(
    quote: Quote,
    from_token_exchange_rate: Optional[NumberLike],
    from_native_exchange_rate: Optional[NumberLike],
) -> AmountValue:
    with localcontext(_CONTEXT):
        total = to_decimal(quote.src_token_amount, "srcTokenAmount") + to_decimal(
            quote.fee_data.metabridge.amount, "feeData.metabridge.amount"
        )
        normalized = total.scaleb(-quote.src_asset.decimals)
        if quote.src_asset.is_native:
            rate = _rate(from_native_exchange_rate, "fromNativeExchangeRate")
        else:
            rate = _rate(from_token_exchange_rate, "fromTokenExchangeRate")
        return AmountValue(raw=normalized, fiat=_fiat(normalized, rate))


def calc_to_amount(
    quote: Quote,
    to_token_exchange_rate: Optional[NumberLike],
    to_native_exchange_rate: Optional[NumberLike],
) -> AmountValue:
    with localcontext(_CONTEXT):
        normalized = calc_token_amount(quote.dest_token_amount, quote.dest_asset.decimals, "destTokenAmount")
        if quote.dest_asset.is_native:
            rate = _rate(to_native_exchange_rate, "toNativeExchangeRate")
        else:
            rate = _rate(to_token_exchange_rate, "toTokenExchangeRate")
        return AmountValue(raw=normalized, fiat=_fiat(normalized, rate))


def calc_relayer_fee(
    quote_response: QuoteResponse,
    from_native_exchange_rate: Optional[NumberLike] = None,
) -> AmountValue:
    """Native value sent with the trade beyond what the quote already accounts for."""
    quote = quote_response.quote
    with localcontext(_CONTEXT):
        trade_value = to_decimal(quote_response.trade.value, "trade.value")
        accounted = Decimal(0)
        if quote.src_asset.is_native:
            accounted = to_decimal(quote.src_token_amount, "srcTokenAmount") + to_decimal(
                quote.fee_data.metabridge.amount, "feeData.metabridge.amount"
            )
        relayer_fee = (trade_value - accounted).scaleb(-NATIVE_DECIMALS)
        rate = _rate(from_native_exchange_rate, "fromNativeExchangeRate")
        return AmountValue(raw=relayer_fee, fiat=_fiat(relayer_fee, rate))


def calc_total_gas_fee(
    quote_response: QuoteResponse,
    estimated_base_fee_in_dec_gwei: Optional[NumberLike],
    max_priority_fee_per_gas_in_dec_gwei: Optional[NumberLike],
    from_native_exchange_rate: Optional[NumberLike] = None,
    l1_gas_fee_in_dec_gwei: Optional[NumberLike] = None,
) -> AmountValue:
    """Gas for the trade plus any approval, priced at base + priority fee.

    Without fee-per-gas estimates the fee is unknown: both values are ``None``.
    """
    if estimated_base_fee_in_dec_gwei is None or max_priority_fee_per_gas_in_dec_gwei is None:
        return AmountValue(raw=None, fiat=None)

    approval = quote_response.approval
    with localcontext(_CONTEXT):
        total_gas_limit = Decimal(quote_response.trade.gas_limit or 0) + Decimal(
            (approval.gas_limit if approval else None) or 0
        )
        fee_per_gas = to_decimal(estimated_base_fee_in_dec_gwei, "estimatedBaseFee") + to_decimal(
            max_priority_fee_per_gas_in_dec_gwei, "maxPriorityFeePerGas"
        )
        gas_fee_in_gwei = total_gas_limit * fee_per_gas
        if l1_gas_fee_in_dec_gwei is not None:
            gas_fee_in_gwei += to_decimal(l1_gas_fee_in_dec_gwei, "l1GasFee")
        gas_fee = gas_fee_in_gwei.scaleb(-GWEI_DECIMALS)
        rate = _rate(from_native_exchange_rate, "fromNativeExchangeRate")
        return AmountValue(raw=gas_fee, fiat=_fiat(gas_fee, rate))


def calc_total_network_fee(
    quote_response: QuoteResponse,
    estimated_base_fee_in_dec_gwei: Optional[NumberLike],
    max_priority_fee_per_gas_in_dec_gwei: Optional[NumberLike],
    from_native_exchange_rate: Optional[NumberLike] = None,
    l1_gas_fee_in_dec_gwei: Optional[NumberLike] = None,
) -> AmountValue:
    gas_fee = calc_total_gas_fee(
        quote_response,
        estimated_base_fee_in_dec_gwei,
        max_priority_fee_per_gas_in_dec_gwei,
        from_native_exchange_rate,
        l1_gas_fee_in_dec_gwei,
    )
    relayer_fee = calc_relayer_fee(quote_response, from_native_exchange_rate)
    with localcontext(_CONTEXT):
        raw = gas_fee.raw + relayer_fee.raw if gas_fee.raw is not None and relayer_fee.raw is not None else None
        fiat = gas_fee.fiat + relayer_fee.fiat if gas_fee.fiat is not None and relayer_fee.fiat is not None else None
    return AmountValue(raw=raw, fiat=fiat)


def calc_adjusted_return(
    dest_token_amount_in_fiat: Optional[Decimal],
    total_network_fee_in_fiat: Optional[Decimal],
) -> FiatValue:
    if dest_token_amount_in_fiat is None or total_network_fee_in_fiat is None:
        return FiatValue(fiat=None)
    with localcontext(_CONTEXT):
        return FiatValue(fiat=dest_token_amount_in_fiat - total_network_fee_in_fiat)


def calc_swap_rate(sent_amount: Decimal, dest_token_amount: Decimal) -> Optional[Decimal]:
    if sent_amount.is_zero():
        return None
    with localcontext(_CONTEXT):
        return dest_token_amount / sent_amount


def calc_cost(
    adjusted_return_in_fiat: Optional[Decimal],
    sent_amount_in_fiat: Optional[Decimal],
) -> FiatValue:
    if adjusted_return_in_fiat is None or sent_amount_in_fiat is None:
        return FiatValue(fiat=None)
    with localcontext(_CONTEXT):
        return FiatValue(fiat=adjusted_return_in_fiat - sent_amount_in_fiat)


def build_quote_metadata(
    quote_response: QuoteResponse,
    rates: Optional[ExchangeRates] = None,
    gas_fees: Optional[GasFeeEstimates] = None,
) -> QuoteWithMetadata:
    """Derive the full metadata view for one quote response."""
    rates = rates or ExchangeRates()
    quote = quote_response.quote

    to_token_amount = calc_to_amount(quote, rates.to_token, rates.to_native)
    total_network_fee = calc_total_network_fee(
        quote_response,
        gas_fees.estimated_base_fee if gas_fees else None,
        gas_fees.max_priority_fee_per_gas if gas_fees else None,
        rates.from_native,
        gas_fees.l1_gas_fee if gas_fees else None,
    )
    sent_amount = calc_sent_amount(quote, rates.from_token, rates.from_native)
    adjusted_return = calc_adjusted_return(to_token_amount.fiat, total_network_fee.fiat)

    metadata = QuoteMetadata(
        sent_amount=sent_amount,
        to_token_amount=to_token_amount,
        total_network_fee=total_network_fee,
        adjusted_return=adjusted_return,
        swap_rate=calc_swap_rate(sent_amount.raw, to_token_amount.raw),
        cost=calc_cost(adjusted_return.fiat, sent_amount.fiat),
    )
    return QuoteWithMetadata(quote_response=quote_response, metadata=metadata)


def is_valid_quote_request(partial_request: Mapping[str, Any], require_amount: bool = True) -> bool:
    """Check a camelCase quote request has everything needed to ask for quotes."""
    string_fields = ["srcTokenAddress", "destTokenAddress"]
    if require_amount:
        string_fields.append("srcTokenAmount")
    number_fields = ["srcChainId", "destChainId", "slippage"]

    for name in string_fields:
        value = partial_request.get(name)
        if not isinstance(value, str) or value == "":
            return False
    for name in number_fields:
        value = partial_request.get(name)
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value != value:
            return False
    if require_amount:
        return bool(_POSITIVE_INTEGER.match(partial_request["srcTokenAmount"]))
    return True


def format_eta_in_minutes(estimated_processing_time_in_seconds: float) -> str:
    minutes = Decimal(str(estimated_processing_time_in_seconds)) / 60
    return format(minutes.quantize(Decimal(1), rounding=ROUND_HALF_UP), "f")


def format_token_amount(amount: Decimal, symbol: str = "", precision: int = 2) -> str:
    quant = Decimal(1).scaleb(-precision) if precision > 0 else Decimal(1)
    return " ".join([format(amount.quantize(quant, rounding=ROUND_DOWN), "f"), symbol]).strip()


def format_fiat_amount(
    amount: Optional[Decimal],
    currency: str,
    precision: int = 2,
) -> Optional[str]:
    if amount is None:
        return None
    quant = Decimal(1).scaleb(-precision) if precision > 0 else Decimal(1)
    return f"{amount.quantize(quant):,f} {currency.upper()}"
