"""Bridge quote ranking and transaction status tracking."""

from typing import TYPE_CHECKING, Optional

from .models import (
    BridgeHistoryItem,
    QuoteResponse,
    QuoteWithMetadata,
    RankedQuotes,
    SortOrder,
    StartTrackingParams,
    StatusRequest,
    StatusResponse,
    StatusTypes,
)
from .ranking import rank_quotes

if TYPE_CHECKING:  # pragma: no cover
    from .service import BridgeQuoteService
    from .tracker import BridgeStatusTracker

__all__ = [
    "BridgeHistoryItem",
    "BridgeQuoteService",
    "BridgeStatusTracker",
    "QuoteResponse",
    "QuoteWithMetadata",
    "RankedQuotes",
    "SortOrder",
    "StartTrackingParams",
    "StatusRequest",
    "StatusResponse",
    "StatusTypes",
    "get_bridge_status_tracker",
    "get_quote_service",
    "rank_quotes",
]

_tracker: Optional["BridgeStatusTracker"] = None
_quote_service: Optional["BridgeQuoteService"] = None


def get_bridge_status_tracker() -> "BridgeStatusTracker":
    """Get the singleton status tracker backed by the bridge API."""
    global _tracker
    if _tracker is None:
        from ...providers.bridge_api import BridgeApiProvider
        from .tracker import BridgeStatusTracker

        _tracker = BridgeStatusTracker(BridgeApiProvider())
    return _tracker


def get_quote_service() -> "BridgeQuoteService":
    """Get the singleton quote service backed by Coingecko and the gas API."""
    global _quote_service
    if _quote_service is None:
        from ...providers.coingecko import CoingeckoProvider
        from ...providers.gas import GasApiProvider
        from .service import BridgeQuoteService

        _quote_service = BridgeQuoteService(rate_provider=CoingeckoProvider(), gas_provider=GasApiProvider())
    return _quote_service


def __getattr__(name: str):  # pragma: no cover - simple thunk
    if name == "BridgeStatusTracker":
        from .tracker import BridgeStatusTracker as _BridgeStatusTracker

        return _BridgeStatusTracker
    if name == "BridgeQuoteService":
        from .service import BridgeQuoteService as _BridgeQuoteService

        return _BridgeQuoteService
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
