"""
VaultGuard - Write-path Payload Builder
Validates user-entered hints and assembles the arguments for
deposit / schedulePayroll / claimPayrollStream.

Nothing here touches the network (except a RemoteEncryption backend, which
is only called after validation passes).

Alias-derived hashes are keccak256 of the alias plus a fixed suffix. They
are deterministic identifiers, not a privacy mechanism.
"""

from decimal import Decimal, InvalidOperation

from web3 import Web3

from .config import ZERO_ADDRESS
from .encryption import MAX_UINT256, get_encryption_provider
from .errors import ValidationError
from .streams import SECONDS_PER_DAY
from .types import ClaimArgs, DepositArgs, ScheduleArgs, ShieldedTransferRequest


# ============================================================
# Input validation
# ============================================================

def parse_amount(value, decimals):
    """
    Convert a human decimal string ("12.5") into raw integer units.
    Rejects empty, non-numeric, non-positive and over-precise input.
    """
    if isinstance(decimals, bool) or not isinstance(decimals, int) or decimals < 0:
        raise ValidationError(f"Decimals must be a non-negative integer, got {decimals!r}")
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationError("Amount is required.")
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValidationError(f"Amount must be a decimal number, got {text!r}.") from None
    if not amount.is_finite():
        raise ValidationError(f"Amount must be a finite number, got {text!r}.")
    if amount <= 0:
        raise ValidationError("Amount must be positive.")

    # scale the integer coefficient, no context precision applies
    if amount.adjusted() + decimals >= 78:
        raise ValidationError(f"Amount {text} is too large.")
    _, digits, exponent = amount.as_tuple()
    coefficient = int("".join(map(str, digits)))
    exponent += decimals
    if exponent >= 0:
        raw = coefficient * 10 ** exponent
    elif -exponent > len(digits) or coefficient % 10 ** -exponent:
        raise ValidationError(
            f"Amount {text} has more than {decimals} decimal places."
        )
    else:
        raw = coefficient // 10 ** -exponent
    if raw > MAX_UINT256:
        raise ValidationError(f"Amount {text} is too large.")
    return raw


def parse_duration_days(value):
    text = str(value).strip() if value is not None else ""
    try:
        days = int(text)
    except ValueError:
        raise ValidationError(f"Duration must be a whole number of days, got {text!r}.") from None
    if days <= 0:
        raise ValidationError("Duration must be greater than zero.")
    return days


def require_address(value, label):
    """Validate a 20-byte hex address and return it checksummed."""
    if not isinstance(value, str) or not Web3.is_address(value):
        raise ValidationError(f"{label} must be a valid 20-byte hex address.")
    return Web3.to_checksum_address(value)


def require_alias(alias):
    if not isinstance(alias, str) or not alias.strip():
        raise ValidationError("Recipient alias is required.")
    return alias.strip()


def require_stream_id(stream_id):
    if isinstance(stream_id, str):
        stream_id = stream_id.strip()
        if not stream_id.isdigit():
            raise ValidationError(f"Stream id must be a non-negative integer, got {stream_id!r}.")
        stream_id = int(stream_id)
    if isinstance(stream_id, bool) or not isinstance(stream_id, int) or stream_id < 0:
        raise ValidationError(f"Stream id must be a non-negative integer, got {stream_id!r}.")
    return stream_id


# ============================================================
# Alias hashing
# ============================================================

def alias_hash(text):
    return Web3.to_hex(Web3.keccak(text=text))


def build_shielded_transfer(vault, alias, amount_text):
    return ShieldedTransferRequest(
        vault=vault,
        recipient_diversifier=alias_hash(f"{alias}-div"),
        recipient_pk=alias_hash(f"{alias}-pk"),
        metadata=Web3.to_hex(text=f"payroll:{alias}"),
        encrypted_amount=alias_hash(f"{alias}:{amount_text}"),
    )


# ============================================================
# Builders
# ============================================================

def build_deposit_args(token, amount, decimals, encryption=None, security_zone=0):
    token = require_address(token, "Token address")
    raw = parse_amount(amount, decimals)
    encryption = encryption or get_encryption_provider()
    return DepositArgs(
        token=token,
        amount=raw,
        payload=encryption.encrypt(raw, security_zone),
    )


def build_schedule_args(alias, total_amount, decimals, duration_days, token,
                        encryption=None, recipient_hint=ZERO_ADDRESS, security_zone=0):
    alias = require_alias(alias)
    token = require_address(token, "Stream token address")
    recipient_hint = require_address(recipient_hint, "Recipient hint address")
    days = parse_duration_days(duration_days)
    total = parse_amount(total_amount, decimals)

    duration_seconds = days * SECONDS_PER_DAY
    rate_per_second = total // duration_seconds
    if rate_per_second == 0:
        raise ValidationError("Amount too small relative to duration and decimals.")

    encryption = encryption or get_encryption_provider()
    return ScheduleArgs(
        encrypted_recipient_hash=alias_hash(alias),
        encrypted_rate_payload=encryption.encrypt(rate_per_second, security_zone),
        recipient_hint=recipient_hint,
        rate_per_second=rate_per_second,
        token=token,
        duration_seconds=duration_seconds,
    )


def build_claim_args(alias, amount, decimals, stream_id, vault,
                     encryption=None, security_zone=0):
    alias = require_alias(alias)
    vault = require_address(vault, "Vault owner address")
    stream_id = require_stream_id(stream_id)
    raw = parse_amount(amount, decimals)

    encryption = encryption or get_encryption_provider()
    return ClaimArgs(
        vault=vault,
        stream_id=stream_id,
        amount=raw,
        encrypted_amount_payload=encryption.encrypt(raw, security_zone),
        transfer=build_shielded_transfer(vault, alias, str(amount).strip()),
    )
