"""
VaultGuard - Payroll Stream Accrual
Claimable amount, status and remaining duration of a stream at a reference time.
"""

from decimal import Decimal, ROUND_HALF_UP

from .assets import resolve_token_metadata
from .config import VG_TOKEN_ADDRESS
from .types import StreamStatus, StreamView

SECONDS_PER_DAY = 86400

# Amounts below this many whole units render as NEAR_ZERO_DISPLAY instead of 0
DISPLAY_EPSILON = Decimal("0.0001")
NEAR_ZERO_DISPLAY = "<0.0001"


# ============================================================
# Display helpers
# ============================================================

def format_hint_amount(amount, decimals):
    """Format a raw integer amount as a human decimal string (max 4 fraction digits)."""
    if amount == 0:
        return "0"
    value = Decimal(amount) / (Decimal(10) ** decimals)
    if value < DISPLAY_EPSILON:
        return NEAR_ZERO_DISPLAY
    rounded = value.quantize(DISPLAY_EPSILON, rounding=ROUND_HALF_UP)
    text = f"{rounded:,.4f}"
    return text.rstrip("0").rstrip(".")


def format_duration(seconds):
    if seconds is None:
        return None
    if seconds <= 0:
        return "0s"
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60
    if days > 0:
        return f"{days}d {hours}h"
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


# ============================================================
# Accrual
# ============================================================

def capped_now(stream, reference_time):
    """Reference time clamped to the stream's end. end_time == 0 is open-ended."""
    if stream.end_time == 0:
        return reference_time
    return min(reference_time, stream.end_time)


def claimable_seconds(stream, reference_time):
    return max(0, capped_now(stream, reference_time) - stream.last_withdrawal_time)


def classify(stream, seconds):
    # inactive > ready > streaming
    if not stream.active:
        return StreamStatus.COMPLETE
    if seconds > 0:
        return StreamStatus.READY
    return StreamStatus.STREAMING


def remaining_duration(stream):
    if stream.end_time <= stream.start_time:
        return None
    total_duration = stream.end_time - stream.start_time
    total_elapsed = max(0, stream.last_withdrawal_time - stream.start_time)
    return max(total_duration - total_elapsed, 0)


def compute_stream_view(stream, decimals, reference_time, metadata=None):
    """
    Build the StreamView of `stream` at `reference_time` (unix seconds).

    Total over non-negative timestamps and rates; negative inputs are a
    caller error.
    """
    metadata = metadata or resolve_token_metadata(stream.token)
    seconds = claimable_seconds(stream, reference_time)
    amount = stream.rate_hint_per_second * seconds
    remaining = remaining_duration(stream)

    return StreamView(
        stream=stream,
        token_symbol=metadata.symbol,
        token_name=metadata.name,
        decimals=decimals,
        claimable_seconds=seconds,
        claimable_amount=amount,
        claimable_display=format_hint_amount(amount, decimals),
        rate_display=format_hint_amount(stream.rate_hint_per_second * SECONDS_PER_DAY, decimals),
        status=classify(stream, seconds),
        remaining_duration=remaining,
        remaining_display=format_duration(remaining),
    )


def compute_stream_views(streams, reference_time, native_token=VG_TOKEN_ADDRESS):
    """Views for a batch of streams, decimals resolved per token."""
    views = []
    for stream in streams:
        meta = resolve_token_metadata(stream.token, native_token)
        views.append(compute_stream_view(stream, meta.decimals, reference_time, meta))
    return tuple(views)
