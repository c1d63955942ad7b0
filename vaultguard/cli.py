#!/usr/bin/env python3
"""
VaultGuard - Command Line Interface
Snapshot reads, bridge status, live watch, and write operations.

Usage:
    vaultguard snapshot
    vaultguard streams --at 1700000000
    vaultguard bridge
    vaultguard watch --refresh-interval 30 --tick-interval 15
    vaultguard deposit 0xToken 1000
    vaultguard schedule alice 3000 0xToken --days 30
    vaultguard claim 0 alice 12.5
"""

import sys
import json
import asyncio
import argparse
from datetime import datetime, timezone

from .aggregator import VaultStateAggregator
from .assets import resolve_token_metadata
from .bridge import bridge_report
from .chain import VaultReader
from .config import (
    REFRESH_INTERVAL, TICK_INTERVAL, VAULT_GUARD_ADDRESS, VAULT_OWNER, VG_TOKEN_ADDRESS,
)
from .vault import approve_token, claim_payroll_stream, deposit, schedule_payroll


def _print(result):
    print(json.dumps(result, indent=2, default=str))


def build_aggregator(owner=None, vault_address=None):
    owner = owner or VAULT_OWNER
    vault_address = vault_address or VAULT_GUARD_ADDRESS
    reader = VaultReader(vault_address) if vault_address else None
    return VaultStateAggregator(reader, owner)


def fetch_snapshot(owner=None, vault_address=None):
    aggregator = build_aggregator(owner, vault_address)
    return asyncio.run(aggregator.refresh())


def _summary_line(snapshot):
    ts = datetime.fromtimestamp(snapshot.reference_time, tz=timezone.utc).strftime("%H:%M:%S")
    ready = sum(1 for v in snapshot.stream_views if v.status.value == "ready")
    return (f"[{ts}] epoch {snapshot.epoch} | {len(snapshot.assets)} assets | "
            f"{snapshot.active_stream_count}/{snapshot.stream_count} streams active, "
            f"{ready} ready | {snapshot.pending_bridge_count} bridge transfers pending")


def watch(owner=None, vault_address=None, refresh_interval=REFRESH_INTERVAL,
          tick_interval=TICK_INTERVAL):
    """Foreground refresh loop. Ctrl-C to stop."""
    aggregator = build_aggregator(owner, vault_address)
    print(f"Watching vault {vault_address or VAULT_GUARD_ADDRESS or '(demo)'} "
          f"for owner {owner or VAULT_OWNER or '(none)'}")
    print(f"   Refresh every {refresh_interval}s, clock tick every {tick_interval}s "
          f"- Ctrl-C to stop")
    try:
        asyncio.run(aggregator.watch(
            refresh_interval, tick_interval,
            on_snapshot=lambda s: print(_summary_line(s)),
        ))
    except KeyboardInterrupt:
        print("\nWatch stopped.")


def main():
    parser = argparse.ArgumentParser(description="VaultGuard encrypted treasury client")
    parser.add_argument("--owner", default=None, help="Vault owner address")
    parser.add_argument("--vault", default=None, help="VaultGuard contract address")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("snapshot", help="Fetch one full vault snapshot")

    st = sub.add_parser("streams", help="Payroll streams with accrual")
    st.add_argument("--at", type=int, help="Reference unix time (default: now)")

    sub.add_parser("bridge", help="Bridge queue reconciliation")

    w = sub.add_parser("watch", help="Refresh continuously (foreground)")
    w.add_argument("--refresh-interval", type=int, default=REFRESH_INTERVAL)
    w.add_argument("--tick-interval", type=int, default=TICK_INTERVAL)

    res = sub.add_parser("resolve", help="Resolve token display metadata")
    res.add_argument("token")

    ap = sub.add_parser("approve", help="Approve the vault to pull tokens")
    ap.add_argument("token")
    ap.add_argument("amount", help="Amount in token units")
    ap.add_argument("--decimals", type=int)
    ap.add_argument("--infinite", action="store_true")

    dep = sub.add_parser("deposit", help="Deposit with an encrypted amount")
    dep.add_argument("token")
    dep.add_argument("amount", help="Amount in token units")
    dep.add_argument("--decimals", type=int)

    sch = sub.add_parser("schedule", help="Schedule a payroll stream")
    sch.add_argument("alias", help="Recipient alias")
    sch.add_argument("amount", help="Total amount over the whole duration")
    sch.add_argument("token")
    sch.add_argument("--days", default="30", help="Duration in days")
    sch.add_argument("--decimals", type=int)

    cl = sub.add_parser("claim", help="Claim a stream into the shielded bridge")
    cl.add_argument("stream_id")
    cl.add_argument("alias", help="Recipient alias")
    cl.add_argument("amount", help="Amount in token units")
    cl.add_argument("--decimals", type=int)

    args = parser.parse_args()

    if args.command == "snapshot":
        _print(fetch_snapshot(args.owner, args.vault).to_dict())

    elif args.command == "streams":
        aggregator = build_aggregator(args.owner, args.vault)
        asyncio.run(aggregator.refresh())
        snapshot = aggregator.tick(args.at) if args.at is not None else aggregator.snapshot
        _print({
            "reference_time": snapshot.reference_time,
            "stream_count": snapshot.stream_count,
            "streams": [v.to_dict() for v in snapshot.stream_views],
            "warnings": list(snapshot.warnings),
        })

    elif args.command == "bridge":
        snapshot = fetch_snapshot(args.owner, args.vault)
        result = bridge_report(snapshot.bridge)
        result["bridge_address"] = snapshot.bridge_address
        _print(result)

    elif args.command == "watch":
        watch(args.owner, args.vault, args.refresh_interval, args.tick_interval)

    elif args.command == "resolve":
        meta = resolve_token_metadata(args.token, VG_TOKEN_ADDRESS)
        _print({"token": args.token, "symbol": meta.symbol, "name": meta.name,
                "decimals": meta.decimals, "price_usd": meta.price_usd})

    elif args.command == "approve":
        _print(approve_token(args.token, args.amount, args.decimals,
                             vault_address=args.vault, infinite=args.infinite))

    elif args.command == "deposit":
        _print(deposit(args.token, args.amount, args.decimals, vault_address=args.vault))

    elif args.command == "schedule":
        _print(schedule_payroll(args.alias, args.amount, args.days, args.token,
                                args.decimals, vault_address=args.vault))

    elif args.command == "claim":
        snapshot = fetch_snapshot(args.owner, args.vault)
        _print(claim_payroll_stream(
            args.alias, args.amount, args.stream_id, args.decimals,
            snapshot=snapshot, epoch=snapshot.epoch, owner=snapshot.owner,
            vault_address=args.vault,
        ))

    else:
        parser.print_help()


def run():
    try:
        main()
    except ValueError as e:
        print(json.dumps({"error": str(e)}), file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(json.dumps({"error": f"Unexpected error: {e}"}), file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    run()
