"""Quote ordering and recommended-quote selection."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Iterable, List, Optional

from ...config import settings
from .models import QuoteWithMetadata, RankedQuotes, SortOrder

logger = logging.getLogger(__name__)


def sort_quotes(
    quotes: Iterable[QuoteWithMetadata],
    sort_order: SortOrder = SortOrder.ADJUSTED_RETURN_DESC,
) -> List[QuoteWithMetadata]:
    """Return a new list ordered by ``sort_order``; ties keep their input order."""
    if sort_order == SortOrder.ETA_ASC:
        return sorted(quotes, key=lambda quote: quote.estimated_processing_time_in_seconds)
    # Unpriced quotes sort after every priced one
    return sorted(
        quotes,
        key=lambda quote: (
            quote.adjusted_return_fiat is None,
            -quote.adjusted_return_fiat if quote.adjusted_return_fiat is not None else Decimal(0),
        ),
    )


def best_return_value(quotes: Iterable[QuoteWithMetadata]) -> Optional[Decimal]:
    priced = [quote.adjusted_return_fiat for quote in quotes if quote.adjusted_return_fiat is not None]
    return max(priced) if priced else None


def is_return_value_reasonable(
    adjusted_return: Optional[Decimal],
    best_return: Optional[Decimal],
    min_return_ratio: Decimal,
    *,
    recommend_unpriced: bool = True,
) -> bool:
    """True when ``adjusted_return`` is at least ``min_return_ratio`` of the best return."""
    if adjusted_return is None:
        return recommend_unpriced
    if best_return is None:
        return True
    if best_return <= 0:
        # A ratio against a non-positive best is meaningless; only the best itself qualifies
        return adjusted_return >= best_return
    return adjusted_return / best_return >= min_return_ratio


def is_eta_reasonable(estimated_processing_time_in_seconds: float, max_eta_seconds: float) -> bool:
    return estimated_processing_time_in_seconds < max_eta_seconds


def select_recommended_quote(
    sorted_quotes: List[QuoteWithMetadata],
    sort_order: SortOrder = SortOrder.ADJUSTED_RETURN_DESC,
    *,
    max_eta_seconds: Optional[float] = None,
    min_return_ratio: Optional[float] = None,
    recommend_unpriced: Optional[bool] = None,
) -> Optional[QuoteWithMetadata]:
    """Pick the first sorted quote that is also reasonable on the other axis.

    Sorting by ETA favours speed, so a quote is skipped if its return is too far
    below the best one. Sorting by return favours value, so a quote is skipped
    if it takes too long. Falls back to the first sorted quote.
    """
    if not sorted_quotes:
        return None

    max_eta = max_eta_seconds if max_eta_seconds is not None else settings.bridge_quote_max_eta_seconds
    ratio = Decimal(str(min_return_ratio if min_return_ratio is not None else settings.bridge_quote_min_return_ratio))
    allow_unpriced = (
        recommend_unpriced if recommend_unpriced is not None else settings.bridge_recommend_unpriced_quotes
    )

    if sort_order == SortOrder.ETA_ASC:
        best = best_return_value(sorted_quotes)
        for quote in sorted_quotes:
            if is_return_value_reasonable(
                quote.adjusted_return_fiat, best, ratio, recommend_unpriced=allow_unpriced
            ):
                return quote
    else:
        for quote in sorted_quotes:
            if is_eta_reasonable(quote.estimated_processing_time_in_seconds, max_eta):
                return quote

    return sorted_quotes[0]


def rank_quotes(
    quotes: Any,
    sort_order: SortOrder = SortOrder.ADJUSTED_RETURN_DESC,
    *,
    max_eta_seconds: Optional[float] = None,
    min_return_ratio: Optional[float] = None,
    recommend_unpriced: Optional[bool] = None,
) -> RankedQuotes:
    """Sort ``quotes`` and choose a recommended one. Never raises on bad input."""
    if quotes is None or isinstance(quotes, (str, bytes, dict)):
        return RankedQuotes()
    try:
        candidates = list(quotes)
    except TypeError:
        logger.warning("Cannot rank non-iterable quotes input of type %s", type(quotes).__name__)
        return RankedQuotes()

    valid = [quote for quote in candidates if isinstance(quote, QuoteWithMetadata)]
    if len(valid) != len(candidates):
        logger.warning("Dropped %d malformed quote records before ranking", len(candidates) - len(valid))

    try:
        order = SortOrder(sort_order)
    except ValueError:
        logger.warning("Unknown sort order %r, using %s", sort_order, SortOrder.ADJUSTED_RETURN_DESC.value)
        order = SortOrder.ADJUSTED_RETURN_DESC

    sorted_list = sort_quotes(valid, order)
    recommended = select_recommended_quote(
        sorted_list,
        order,
        max_eta_seconds=max_eta_seconds,
        min_return_ratio=min_return_ratio,
        recommend_unpriced=recommend_unpriced,
    )
    return RankedQuotes(sorted_quotes=sorted_list, recommended_quote=recommended)
