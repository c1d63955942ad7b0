"""
VaultGuard - Bridge Queue Reconciliation
Split queued shielded transfers into pending / settled views and detect
transfers marked processed that still carry no Zcash transaction id.
"""

from .config import RECENT_LIMIT
from .types import BridgeQueueView


def is_zero_hash(value):
    """True for None, empty, or a hex string that is all zeros after the 0x prefix."""
    if not value:
        return True
    normalized = value.lower()
    if normalized.startswith("0x"):
        normalized = normalized[2:]
    return set(normalized) <= {"0"}


def has_settlement_id(transfer):
    # authoritative over `processed`, which may be stale
    return not is_zero_hash(transfer.zcash_tx_id)


def reconcile_bridge_queue(transfers, commitments=(), recent_limit=RECENT_LIMIT):
    """
    Build the BridgeQueueView for one snapshot.

    `recent` is the last `recent_limit` transfers by (timestamp, index),
    newest first, regardless of processed state.
    """
    transfers = tuple(sorted(transfers, key=lambda t: t.index))
    pending = tuple(t for t in transfers if not t.processed)
    settled = tuple(t for t in transfers if t.processed)
    missing = tuple(t for t in settled if not has_settlement_id(t))

    if recent_limit > 0:
        by_time = sorted(transfers, key=lambda t: (t.timestamp, t.index))
        recent = tuple(reversed(by_time[-recent_limit:]))
        recent_commitments = tuple(reversed(list(commitments)[-recent_limit:]))
    else:
        recent = ()
        recent_commitments = ()

    return BridgeQueueView(
        pending=pending,
        settled=settled,
        recent=recent,
        missing_settlement_id=missing,
        recent_commitments=recent_commitments,
    )


def bridge_report(view):
    """Summary counts plus per-transfer status rows for display."""
    rows = []
    for transfer in view.pending + view.settled:
        if has_settlement_id(transfer):
            status = "settled"
        elif transfer.processed:
            status = "processed_without_txid"
        else:
            status = "pending"
        rows.append({
            "index": transfer.index,
            "commitment": transfer.commitment,
            "timestamp": transfer.timestamp,
            "processed": transfer.processed,
            "zcash_tx_id": None if is_zero_hash(transfer.zcash_tx_id) else transfer.zcash_tx_id,
            "status": status,
        })
    rows.sort(key=lambda r: r["index"])

    return {
        "summary": {
            "pending": len(view.pending),
            "settled": len(view.settled),
            "missing_settlement_id": len(view.missing_settlement_id),
        },
        "transfers": rows,
        "recent_commitments": list(view.recent_commitments),
    }
