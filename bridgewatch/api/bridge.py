from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..core.bridge import get_bridge_status_tracker, get_quote_service
from ..core.bridge.errors import InvalidAmountError
from ..core.bridge.models import (
    ExchangeRates,
    GasFeeEstimates,
    SortOrder,
    StartTrackingParams,
)
from ..core.bridge.quote import format_eta_in_minutes, to_decimal
from ..core.bridge.service import BridgeQuoteService
from ..core.bridge.tracker import BridgeStatusTracker

router = APIRouter(prefix="/bridge")


class ExchangeRatesInput(BaseModel):
    fromTokenExchangeRate: Optional[str] = None
    fromNativeExchangeRate: Optional[str] = None
    toTokenExchangeRate: Optional[str] = None
    toNativeExchangeRate: Optional[str] = None

    def to_rates(self) -> ExchangeRates:
        def parse(value: Optional[str], field: str):
            return to_decimal(value, field) if value is not None else None

        return ExchangeRates(
            from_token=parse(self.fromTokenExchangeRate, "fromTokenExchangeRate"),
            from_native=parse(self.fromNativeExchangeRate, "fromNativeExchangeRate"),
            to_token=parse(self.toTokenExchangeRate, "toTokenExchangeRate"),
            to_native=parse(self.toNativeExchangeRate, "toNativeExchangeRate"),
        )


class GasFeesInput(BaseModel):
    estimatedBaseFee: str = Field(..., description="Base fee in decimal gwei")
    maxPriorityFeePerGas: str = Field(..., description="Priority fee in decimal gwei")
    l1GasFee: Optional[str] = Field(default=None, description="Separate L1 data fee in decimal gwei")

    def to_estimates(self) -> GasFeeEstimates:
        return GasFeeEstimates(
            estimated_base_fee=self.estimatedBaseFee,
            max_priority_fee_per_gas=self.maxPriorityFeePerGas,
            l1_gas_fee=self.l1GasFee,
        )


class RankQuotesRequest(BaseModel):
    quotes: List[Dict[str, Any]] = Field(default_factory=list, description="Raw quote responses from the bridge API")
    sortOrder: SortOrder = SortOrder.ADJUSTED_RETURN_DESC
    currency: Optional[str] = Field(default=None, description="Fiat currency; defaults to settings.display_currency")
    exchangeRates: Optional[ExchangeRatesInput] = None
    gasFees: Optional[GasFeesInput] = None


@router.post("/quotes/rank")
async def rank_bridge_quotes(
    request: RankQuotesRequest,
    service: BridgeQuoteService = Depends(get_quote_service),
) -> Dict[str, Any]:
    try:
        ranked = await service.get_ranked_quotes(
            request.quotes,
            request.sortOrder,
            currency=request.currency,
            exchange_rates=request.exchangeRates.to_rates() if request.exchangeRates else None,
            gas_fees=request.gasFees.to_estimates() if request.gasFees else None,
        )
    except InvalidAmountError as exc:
        raise HTTPException(status_code=422, detail=exc.message)

    payload = ranked.to_dict()
    for entry, quote in zip(payload["sortedQuotes"], ranked.sorted_quotes):
        entry["etaMinutes"] = format_eta_in_minutes(quote.estimated_processing_time_in_seconds)
    return {"success": True, "sortOrder": request.sortOrder.value, **payload}


@router.post("/status")
async def start_tracking(
    params: StartTrackingParams,
    tracker: BridgeStatusTracker = Depends(get_bridge_status_tracker),
) -> Dict[str, Any]:
    started = tracker.start_tracking(params)
    src_tx_hash = params.status_request.src_tx_hash
    return {
        "success": True,
        "started": started,
        "srcTxHash": src_tx_hash,
        "state": tracker.tracking_state(src_tx_hash).value,
    }


@router.delete("/status/{tx_hash}")
async def stop_tracking(
    tx_hash: str,
    tracker: BridgeStatusTracker = Depends(get_bridge_status_tracker),
) -> Dict[str, Any]:
    return {"success": True, "stopped": tracker.stop_tracking(tx_hash), "srcTxHash": tx_hash}


@router.get("/history")
async def get_history(
    tracker: BridgeStatusTracker = Depends(get_bridge_status_tracker),
) -> Dict[str, Any]:
    history = tracker.get_history()
    return {
        "success": True,
        "txHistory": {tx_hash: item.to_payload() for tx_hash, item in history.items()},
    }


@router.get("/history/{tx_hash}")
async def get_history_item(
    tx_hash: str,
    tracker: BridgeStatusTracker = Depends(get_bridge_status_tracker),
) -> Dict[str, Any]:
    item = tracker.get_history_item(tx_hash)
    if item is None:
        raise HTTPException(status_code=404, detail=f"No bridge history for {tx_hash}")
    return {
        "success": True,
        "srcTxHash": tx_hash,
        "state": tracker.tracking_state(tx_hash).value,
        "item": item.to_payload(),
    }


@router.delete("/history")
async def reset_history(
    tracker: BridgeStatusTracker = Depends(get_bridge_status_tracker),
) -> Dict[str, Any]:
    tracker.reset()
    return {"success": True}
