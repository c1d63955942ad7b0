"""
VaultGuard - Core types
Read records, derived views, and write-path argument structures.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from .errors import StaleSnapshotError


class StreamStatus(str, Enum):
    READY = "ready"
    STREAMING = "streaming"
    COMPLETE = "complete"


@dataclass(frozen=True)
class TokenMetadata:
    symbol: str
    name: str
    decimals: int
    price_usd: float


@dataclass(frozen=True)
class AssetRecord:
    """One entry of getVaultTokens, validated."""
    token: str
    encrypted_balance: int  # ciphertext handle, not a plaintext balance
    target_weight_bps: Optional[int] = None


@dataclass(frozen=True)
class VaultAsset:
    token: str
    encrypted_balance: int
    symbol: str
    name: str
    decimals: int
    price_usd: float
    target_weight_bps: Optional[int] = None

    def to_dict(self):
        return {
            "token": self.token,
            "encrypted_balance": str(self.encrypted_balance),
            "symbol": self.symbol,
            "name": self.name,
            "decimals": self.decimals,
            "price_usd": self.price_usd,
            "target_weight_bps": self.target_weight_bps,
        }


@dataclass(frozen=True)
class VaultStream:
    """A payroll stream. `id` is positional and only valid within one snapshot."""
    id: int
    encrypted_recipient: str
    token: str
    rate_hint_per_second: int
    start_time: int
    last_withdrawal_time: int
    end_time: int  # 0 means open-ended
    active: bool

    def to_dict(self):
        return {
            "id": self.id,
            "encrypted_recipient": self.encrypted_recipient,
            "token": self.token,
            "rate_hint_per_second": str(self.rate_hint_per_second),
            "start_time": self.start_time,
            "last_withdrawal_time": self.last_withdrawal_time,
            "end_time": self.end_time,
            "active": self.active,
        }


@dataclass(frozen=True)
class StreamView:
    stream: VaultStream
    token_symbol: str
    token_name: str
    decimals: int
    claimable_seconds: int
    claimable_amount: int
    claimable_display: str
    rate_display: str
    status: StreamStatus
    remaining_duration: Optional[int] = None
    remaining_display: Optional[str] = None

    @property
    def id(self):
        return self.stream.id

    def to_dict(self):
        data = self.stream.to_dict()
        data.update({
            "token_symbol": self.token_symbol,
            "token_name": self.token_name,
            "decimals": self.decimals,
            "claimable_seconds": self.claimable_seconds,
            "claimable_amount": str(self.claimable_amount),
            "claimable_display": self.claimable_display,
            "rate_display": self.rate_display,
            "status": self.status.value,
            "remaining_duration": self.remaining_duration,
            "remaining_display": self.remaining_display,
        })
        return data


@dataclass(frozen=True)
class EncryptedPayload:
    data: str  # 0x-prefixed hex
    security_zone: int = 0

    def as_contract_arg(self):
        return (bytes.fromhex(self.data[2:]), self.security_zone)

    def to_dict(self):
        return {"data": self.data, "securityZone": self.security_zone}


@dataclass(frozen=True)
class ShieldedTransferRequest:
    vault: str
    recipient_diversifier: str
    recipient_pk: str
    metadata: str
    encrypted_amount: str

    def as_contract_arg(self):
        return (
            self.vault,
            bytes.fromhex(self.recipient_diversifier[2:]),
            bytes.fromhex(self.recipient_pk[2:]),
            bytes.fromhex(self.metadata[2:]),
            bytes.fromhex(self.encrypted_amount[2:]),
        )

    def to_dict(self):
        return {
            "vault": self.vault,
            "recipientDiversifier": self.recipient_diversifier,
            "recipientPk": self.recipient_pk,
            "metadata": self.metadata,
            "encryptedAmount": self.encrypted_amount,
        }


@dataclass(frozen=True)
class BridgeTransfer:
    index: int
    vault: str
    commitment: str
    timestamp: int
    processed: bool
    zcash_tx_id: str  # all-zero until settled
    recipient_diversifier: str
    recipient_pk: str
    metadata: str
    encrypted_amount: str

    def to_dict(self):
        return {
            "index": self.index,
            "vault": self.vault,
            "commitment": self.commitment,
            "timestamp": self.timestamp,
            "processed": self.processed,
            "zcash_tx_id": self.zcash_tx_id,
            "recipient_diversifier": self.recipient_diversifier,
            "recipient_pk": self.recipient_pk,
            "metadata": self.metadata,
            "encrypted_amount": self.encrypted_amount,
        }


@dataclass(frozen=True)
class BridgeQueueView:
    pending: Tuple[BridgeTransfer, ...] = ()
    settled: Tuple[BridgeTransfer, ...] = ()
    recent: Tuple[BridgeTransfer, ...] = ()
    missing_settlement_id: Tuple[BridgeTransfer, ...] = ()
    recent_commitments: Tuple[str, ...] = ()

    def to_dict(self):
        return {
            "pending": [t.to_dict() for t in self.pending],
            "settled": [t.to_dict() for t in self.settled],
            "recent": [t.to_dict() for t in self.recent],
            "missing_settlement_id": [t.index for t in self.missing_settlement_id],
            "recent_commitments": list(self.recent_commitments),
        }


# ============================================================
# Write-path arguments
# ============================================================

@dataclass(frozen=True)
class DepositArgs:
    token: str
    amount: int
    payload: EncryptedPayload

    def contract_args(self):
        return (self.token, self.amount, self.payload.as_contract_arg())


@dataclass(frozen=True)
class ScheduleArgs:
    encrypted_recipient_hash: str
    encrypted_rate_payload: EncryptedPayload
    recipient_hint: str
    rate_per_second: int
    token: str
    duration_seconds: int

    def contract_args(self):
        return (
            bytes.fromhex(self.encrypted_recipient_hash[2:]),
            self.encrypted_rate_payload.as_contract_arg(),
            self.recipient_hint,
            self.rate_per_second,
            self.token,
            self.duration_seconds,
        )


@dataclass(frozen=True)
class ClaimArgs:
    vault: str
    stream_id: int
    amount: int
    encrypted_amount_payload: EncryptedPayload
    transfer: ShieldedTransferRequest

    def contract_args(self):
        return (
            self.vault,
            self.stream_id,
            self.amount,
            self.encrypted_amount_payload.as_contract_arg(),
            self.transfer.as_contract_arg(),
        )


# ============================================================
# Snapshot
# ============================================================

@dataclass(frozen=True)
class VaultSnapshot:
    """
    One coherent view of the vault. Never patched: every refresh or clock
    tick produces a new instance.
    """
    epoch: int
    owner: Optional[str]
    reference_time: int
    fetched_at: int
    assets: Tuple[VaultAsset, ...] = ()
    streams: Tuple[VaultStream, ...] = ()
    stream_views: Tuple[StreamView, ...] = ()
    stream_count: int = 0
    bridge_address: Optional[str] = None
    transfers: Tuple[BridgeTransfer, ...] = ()
    commitments: Tuple[str, ...] = ()
    bridge: BridgeQueueView = field(default_factory=BridgeQueueView)
    is_contract_backed: bool = False
    stale_sections: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()

    @property
    def active_stream_count(self):
        return sum(1 for s in self.streams if s.active)

    @property
    def pending_bridge_count(self):
        return len(self.bridge.pending)

    @property
    def total_target_weight_bps(self):
        return sum(a.target_weight_bps or 0 for a in self.assets)

    def find_asset(self, token):
        if not token:
            return None
        token = token.lower()
        for asset in self.assets:
            if asset.token.lower() == token:
                return asset
        return None

    def require_stream(self, stream_id, epoch=None):
        """
        Return the StreamView for `stream_id`, rejecting ids picked from an
        older snapshot or beyond the current stream count.
        """
        if epoch is not None and epoch != self.epoch:
            raise StaleSnapshotError(stream_id, epoch, self.epoch, self.stream_count)
        if "streams" in self.stale_sections:
            raise StaleSnapshotError(
                stream_id, epoch, self.epoch, self.stream_count,
                "Stream list changed during the last refresh; refresh again before claiming",
            )
        if stream_id < 0 or stream_id >= self.stream_count:
            raise StaleSnapshotError(stream_id, None, self.epoch, self.stream_count)
        for view in self.stream_views:
            if view.id == stream_id:
                return view
        raise StaleSnapshotError(stream_id, None, self.epoch, self.stream_count)

    def to_dict(self):
        return {
            "epoch": self.epoch,
            "owner": self.owner,
            "reference_time": self.reference_time,
            "fetched_at": self.fetched_at,
            "is_contract_backed": self.is_contract_backed,
            "assets": [a.to_dict() for a in self.assets],
            "stream_count": self.stream_count,
            "active_stream_count": self.active_stream_count,
            "streams": [v.to_dict() for v in self.stream_views],
            "bridge_address": self.bridge_address,
            "pending_bridge_count": self.pending_bridge_count,
            "bridge": self.bridge.to_dict(),
            "total_target_weight_bps": self.total_target_weight_bps,
            "stale_sections": list(self.stale_sections),
            "warnings": list(self.warnings),
        }
