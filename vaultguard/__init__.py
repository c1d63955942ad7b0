"""
VaultGuard - Python Package Exports

Usage:
    from vaultguard import VaultStateAggregator, VaultReader
    from vaultguard import compute_stream_view, reconcile_bridge_queue
    from vaultguard import build_deposit_args, build_schedule_args, build_claim_args
"""

# Read path
from .aggregator import VaultStateAggregator
from .chain import VaultReader

# Asset metadata
from .assets import resolve_token_metadata, build_vault_asset

# Stream accrual
from .streams import compute_stream_view, format_hint_amount, format_duration

# Bridge reconciliation
from .bridge import reconcile_bridge_queue, is_zero_hash, has_settlement_id

# Payloads / encryption
from .payloads import build_deposit_args, build_schedule_args, build_claim_args, parse_amount
from .encryption import (
    PlaceholderEncryption,
    RemoteEncryption,
    get_encryption_provider,
    encode_placeholder,
    decode_placeholder,
)

# Write operations
from .vault import approve_token, deposit, schedule_payroll, claim_payroll_stream

__all__ = [
    # Read path
    "VaultStateAggregator", "VaultReader",
    # Asset metadata
    "resolve_token_metadata", "build_vault_asset",
    # Stream accrual
    "compute_stream_view", "format_hint_amount", "format_duration",
    # Bridge
    "reconcile_bridge_queue", "is_zero_hash", "has_settlement_id",
    # Payloads
    "build_deposit_args", "build_schedule_args", "build_claim_args", "parse_amount",
    "PlaceholderEncryption", "RemoteEncryption", "get_encryption_provider",
    "encode_placeholder", "decode_placeholder",
    # Writes
    "approve_token", "deposit", "schedule_payroll", "claim_payroll_stream",
]
