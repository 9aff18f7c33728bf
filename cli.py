#!/usr/bin/env python3
"""Simple CLI for checking bridge quotes and transactions locally"""

import argparse
import asyncio
import json
import sys
import time
from pathlib import Path
from typing import Any, Optional

from bridgewatch.config import settings
from bridgewatch.core.bridge import get_quote_service
from bridgewatch.core.bridge.errors import BridgeError, StatusFetchError
from bridgewatch.core.bridge.models import (
    ExchangeRates,
    GasFeeEstimates,
    RankedQuotes,
    SortOrder,
    StartTrackingParams,
    StatusRequest,
    StatusResponse,
    TrackingState,
)
from bridgewatch.core.bridge.polling import PollingScheduler
from bridgewatch.core.bridge.quote import format_eta_in_minutes, format_fiat_amount, format_token_amount, to_decimal
from bridgewatch.core.bridge.segments import get_dest_tx_status, get_src_tx_status, get_tx_index
from bridgewatch.core.bridge.tracker import BridgeStatusTracker
from bridgewatch.logging_config import setup_logging
from bridgewatch.providers.bridge_api import BridgeApiProvider


def load_json(path: str) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def build_status_request(args) -> StatusRequest:
    return StatusRequest(
        src_chain_id=args.src_chain_id,
        src_tx_hash=args.tx_hash,
        bridge_id=args.bridge_id,
        dest_chain_id=args.dest_chain_id,
    )


def print_status(status: StatusResponse):
    """Pretty print a bridge status response"""
    src_status = get_src_tx_status(bool(status.src_chain.tx_hash))
    dest_status = get_dest_tx_status(None, src_status)
    if status.is_complete and status.dest_chain and status.dest_chain.tx_hash:
        dest_status = status.status

    print(f"\n🌉 Bridge status: {status.status.value}")
    print("=" * 50)
    print(f"Bridge: {status.bridge or 'unknown'}")
    print(f"Source tx ({status.src_chain.chain_id}): {status.src_chain.tx_hash or '-'} [{src_status.value}]")
    if status.dest_chain:
        dest_label = dest_status.value if dest_status else "-"
        print(f"Dest tx ({status.dest_chain.chain_id}): {status.dest_chain.tx_hash or '-'} [{dest_label}]")
    print(f"In progress: transaction {get_tx_index(src_status)} of 2")


def print_ranked(ranked: RankedQuotes, currency: str):
    """Pretty print ranked quotes"""
    if not ranked.sorted_quotes:
        print("❌ No valid quotes to rank")
        return

    recommended = ranked.recommended_quote
    print(f"\n📊 {len(ranked.sorted_quotes)} quotes")
    print("-" * 50)
    for i, quote in enumerate(ranked.sorted_quotes, 1):
        marker = "⭐" if quote is recommended else "  "
        metadata = quote.metadata
        symbol = quote.quote.dest_asset.symbol or ""
        received = format_token_amount(metadata.to_token_amount.raw, symbol, 4)
        adjusted = format_fiat_amount(metadata.adjusted_return.fiat, currency) or "No price"
        eta = format_eta_in_minutes(quote.estimated_processing_time_in_seconds)
        bridge = quote.quote.bridge_id or ", ".join(quote.quote.bridges) or "?"
        print(f"{marker}{i:2d}. {bridge:<12} {received:>18} {adjusted:>16} ~{eta} min")


async def cli_status(args):
    """CLI command for a one-shot status fetch"""
    provider = BridgeApiProvider()
    try:
        status = await provider.fetch_tx_status(build_status_request(args))
    except StatusFetchError as e:
        print(f"❌ Error: {e.message}")
        return 1
    print_status(status)
    return 0


async def cli_watch(args):
    """Poll a transaction until the bridge reports it complete"""
    status_request = build_status_request(args)
    params = StartTrackingParams(
        status_request=status_request,
        quote_response=load_json(args.quote),
        start_time=int(time.time() * 1000),
        slippage_percentage=args.slippage,
    )
    tracker = BridgeStatusTracker(
        BridgeApiProvider(),
        scheduler=PollingScheduler(interval_seconds=args.interval),
    )

    print(f"👀 Watching {status_request.src_tx_hash} every {args.interval or settings.bridge_status_poll_interval_seconds}s...")
    tracker.start_tracking(params)
    await tracker.start()
    last_status: Optional[str] = None
    try:
        while tracker.tracking_state(status_request.src_tx_hash) != TrackingState.COMPLETE:
            await asyncio.sleep(1)
            item = tracker.get_history_item(status_request.src_tx_hash)
            if item and item.status and item.status.status.value != last_status:
                last_status = item.status.status.value
                print(f"   status={last_status}")
    finally:
        await tracker.shutdown()

    item = tracker.get_history_item(status_request.src_tx_hash)
    print_status(item.status)
    return 0


def parse_rates(args) -> Optional[ExchangeRates]:
    values = [args.from_token_rate, args.from_native_rate, args.to_token_rate, args.to_native_rate]
    if all(value is None for value in values):
        return None
    parsed = [to_decimal(value, "rate") if value is not None else None for value in values]
    return ExchangeRates(*parsed)


async def cli_rank(args):
    """Rank quotes from a JSON file"""
    raw = load_json(args.quotes)
    if isinstance(raw, dict):
        raw = raw.get("quotes", [])

    gas_fees = None
    if args.base_fee is not None and args.priority_fee is not None:
        gas_fees = GasFeeEstimates(args.base_fee, args.priority_fee, args.l1_fee)

    currency = (args.currency or settings.display_currency).lower()
    try:
        ranked = await get_quote_service().get_ranked_quotes(
            raw,
            SortOrder(args.sort),
            currency=currency,
            exchange_rates=parse_rates(args),
            gas_fees=gas_fees,
        )
    except BridgeError as e:
        print(f"❌ Error: {e.message}")
        return 1

    print_ranked(ranked, currency)
    return 0


def add_status_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("src_chain_id", type=int, help="Source chain id")
    parser.add_argument("tx_hash", help="Source transaction hash")
    parser.add_argument("bridge_id", help="Bridge aggregator id from the quote")
    parser.add_argument("dest_chain_id", type=int, help="Destination chain id")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bridgewatch CLI")
    subparsers = parser.add_subparsers(dest="command")

    status_parser = subparsers.add_parser("status", help="Fetch the current status of a bridge transaction")
    add_status_arguments(status_parser)

    watch_parser = subparsers.add_parser("watch", help="Poll a bridge transaction until it completes")
    add_status_arguments(watch_parser)
    watch_parser.add_argument("--quote", required=True, help="Path to the quote response JSON that was submitted")
    watch_parser.add_argument("--slippage", type=float, default=0.5, help="Slippage percentage used (default: 0.5)")
    watch_parser.add_argument("--interval", type=float, help="Poll interval in seconds")

    rank_parser = subparsers.add_parser("rank", help="Rank quote responses from a JSON file")
    rank_parser.add_argument("quotes", help="Path to a JSON list of quote responses")
    rank_parser.add_argument("--sort", choices=[order.value for order in SortOrder], default=SortOrder.ADJUSTED_RETURN_DESC.value)
    rank_parser.add_argument("--currency", help="Fiat currency (default: settings.display_currency)")
    rank_parser.add_argument("--from-token-rate")
    rank_parser.add_argument("--from-native-rate")
    rank_parser.add_argument("--to-token-rate")
    rank_parser.add_argument("--to-native-rate")
    rank_parser.add_argument("--base-fee", help="Estimated base fee in decimal gwei")
    rank_parser.add_argument("--priority-fee", help="Max priority fee per gas in decimal gwei")
    rank_parser.add_argument("--l1-fee", help="L1 data fee in decimal gwei")

    return parser


async def main() -> int:
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 0

    setup_logging()
    command = args.command.lower()

    if command == "status":
        return await cli_status(args)
    if command == "watch":
        return await cli_watch(args)
    if command == "rank":
        return await cli_rank(args)

    print(f"❌ Unknown command: {command}")
    parser.print_help()
    return 1


def run():
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
