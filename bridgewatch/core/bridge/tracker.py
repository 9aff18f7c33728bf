"""BridgeStatusTracker polls bridge transaction status until completion."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Protocol

from .models import (
    BridgeHistoryItem,
    StartTrackingParams,
    StatusRequest,
    StatusResponse,
    TrackingState,
)
from .polling import PollingScheduler, PollingSession


class StatusSource(Protocol):
    async def fetch_tx_status(self, status_request: StatusRequest) -> StatusResponse:
        ...


def merge_status(item: BridgeHistoryItem, status: StatusResponse) -> BridgeHistoryItem:
    """Return ``item`` with ``status`` replaced.

    Only the ``status`` field changes; the quote, timing, pricing snapshot,
    balances, target contract and account captured at submission are carried
    over untouched.
    """
    return item.model_copy(update={"status": status})


def build_history_item(params: StartTrackingParams, account: Optional[str] = None) -> BridgeHistoryItem:
    quote_response = params.quote_response
    return BridgeHistoryItem(
        quote=quote_response.quote,
        start_time=params.start_time,
        estimated_processing_time_in_seconds=quote_response.estimated_processing_time_in_seconds,
        slippage_percentage=params.slippage_percentage,
        completion_time=params.completion_time,
        pricing_data=params.pricing_data,
        initial_dest_asset_balance=params.initial_dest_asset_balance,
        target_contract_address=params.target_contract_address,
        account=params.account or account,
        status=None,
    )


class BridgeStatusTracker:
    """Keeps the bridge transaction history and one polling session per in-flight hash."""

    def __init__(
        self,
        status_source: StatusSource,
        *,
        scheduler: Optional[PollingScheduler] = None,
        account_resolver: Optional[Callable[[], Optional[str]]] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._logger = logger or logging.getLogger(__name__)
        self._status_source = status_source
        self._scheduler = scheduler or PollingScheduler()
        self._account_resolver = account_resolver
        self._history: Dict[str, BridgeHistoryItem] = {}

    @property
    def scheduler(self) -> PollingScheduler:
        return self._scheduler

    async def start(self) -> None:
        await self._scheduler.ensure_started()

    async def shutdown(self) -> None:
        await self._scheduler.stop()

    def start_tracking(self, params: StartTrackingParams) -> bool:
        """Record the submission and begin polling its status.

        Returns ``False`` without touching anything when the source hash is
        already being polled or has completed.
        """
        status_request = params.status_request
        src_tx_hash = status_request.src_tx_hash
        if self._scheduler.is_active(src_tx_hash):
            self._logger.info("Bridge tx %s is already being tracked", src_tx_hash)
            return False
        if self.tracking_state(src_tx_hash) == TrackingState.COMPLETE:
            self._logger.info("Bridge tx %s already completed; not polling again", src_tx_hash)
            return False

        if src_tx_hash not in self._history:
            account = self._account_resolver() if self._account_resolver else None
            self._history[src_tx_hash] = build_history_item(params, account)

        self._scheduler.start_session(src_tx_hash, self._execute_poll, payload=status_request)
        self._logger.info(
            "Tracking bridge tx %s (bridge=%s, %s -> %s)",
            src_tx_hash,
            status_request.bridge_id,
            status_request.src_chain_id,
            status_request.dest_chain_id,
        )
        return True

    def stop_tracking(self, src_tx_hash: str) -> bool:
        return self._scheduler.stop_session(src_tx_hash)

    def get_history(self) -> Dict[str, BridgeHistoryItem]:
        return dict(self._history)

    def get_history_item(self, src_tx_hash: str) -> Optional[BridgeHistoryItem]:
        return self._history.get(src_tx_hash)

    def tracking_state(self, src_tx_hash: str) -> TrackingState:
        item = self._history.get(src_tx_hash)
        if item is None:
            return TrackingState.NOT_STARTED
        if item.status is not None and item.status.is_complete:
            return TrackingState.COMPLETE
        return TrackingState.PENDING

    def reset(self) -> None:
        """Drop every session and all history (logout / wipe)."""
        self._scheduler.stop_all()
        self._history.clear()

    async def _execute_poll(self, session: PollingSession) -> None:
        status_request: StatusRequest = session.payload
        # The status API often errors right after the source tx is submitted;
        # the scheduler logs and counts the failure and the next tick retries.
        status = await self._status_source.fetch_tx_status(status_request)
        self.apply_status(session, status)

    def apply_status(self, session: PollingSession, status: StatusResponse) -> bool:
        """Merge a fetched status for ``session``; responses for stopped sessions are dropped."""
        src_tx_hash = session.key
        if not self._scheduler.is_current(session):
            self._logger.debug("Discarding status for %s from a stopped session", src_tx_hash)
            return False
        item = self._history.get(src_tx_hash)
        if item is None:
            return False

        self._history[src_tx_hash] = merge_status(item, status)
        self._logger.debug("Bridge tx %s status=%s", src_tx_hash, status.status.value)

        if status.is_complete:
            self._scheduler.stop_session(src_tx_hash)
            dest_hash = status.dest_chain.tx_hash if status.dest_chain else None
            self._logger.info("Bridge tx %s complete (dest tx %s)", src_tx_hash, dest_hash)
        return True
