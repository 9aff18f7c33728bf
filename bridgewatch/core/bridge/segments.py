"""Two-segment progress (source tx, then destination tx) for a tracked bridge."""

from __future__ import annotations

from typing import Optional

from .models import BridgeHistoryItem, StatusTypes


def get_src_tx_status(src_tx_confirmed: bool) -> StatusTypes:
    return StatusTypes.COMPLETE if src_tx_confirmed else StatusTypes.PENDING


def get_dest_tx_status(
    item: Optional[BridgeHistoryItem],
    src_tx_status: StatusTypes,
) -> Optional[StatusTypes]:
    """Destination segment status; ``None`` until the source tx is confirmed."""
    if src_tx_status != StatusTypes.COMPLETE:
        return None
    status = item.status if item else None
    if (
        status is not None
        and status.status == StatusTypes.COMPLETE
        and status.dest_chain is not None
        and status.dest_chain.tx_hash
    ):
        return StatusTypes.COMPLETE
    return StatusTypes.PENDING


def get_tx_index(src_tx_status: StatusTypes) -> int:
    """Which of the two transactions is currently in progress (1 or 2)."""
    if src_tx_status == StatusTypes.PENDING:
        return 1
    if src_tx_status == StatusTypes.COMPLETE:
        return 2
    raise ValueError(f"No transaction index for source status {src_tx_status.value}")
