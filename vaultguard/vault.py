"""
VaultGuard - Write Operations
Deposit, ERC20 approval, payroll scheduling and stream claims.

Every handler validates and builds its arguments before touching the
network. Submissions are one-shot: no retry, no deduplication. Failures
surface as VaultWriteError carrying the underlying message.
"""

from datetime import datetime, timezone

from web3 import Web3

from .assets import resolve_token_metadata
from .config import (
    CHAIN, ERC20_ABI, VAULT_GUARD_ABI, VAULT_GUARD_ADDRESS, ZERO_ADDRESS, get_private_key,
)
from .errors import ValidationError, VaultGuardError, VaultWriteError
from .payloads import (
    build_claim_args, build_deposit_args, build_schedule_args, parse_amount, require_address,
    require_alias, require_stream_id,
)

# Max uint256 for infinite approval
MAX_UINT256 = 2**256 - 1


# ============================================================
# Connection / gas helpers
# ============================================================

def get_web3(rpc_url=None):
    """Get a Web3 instance for the configured chain"""
    return Web3(Web3.HTTPProvider(rpc_url or CHAIN["rpc"], request_kwargs={"timeout": 15}))


def _connect(w3=None, private_key=None):
    w3 = w3 or get_web3()
    account = w3.eth.account.from_key(private_key or get_private_key())
    return w3, account


def _require_vault(vault_address):
    vault_address = vault_address or VAULT_GUARD_ADDRESS
    if not vault_address:
        raise ValidationError("VAULT_GUARD_ADDRESS is not configured.")
    return require_address(vault_address, "VaultGuard contract address")


def _build_tx_params(w3, account_address):
    """
    Build base transaction parameters with EIP-1559 fee estimation
    where supported, falling back to legacy gasPrice.
    """
    params = {
        "from": account_address,
        "chainId": CHAIN["chain_id"],
    }

    try:
        latest = w3.eth.get_block("latest")
        base_fee = latest.get("baseFeePerGas")
        if base_fee is not None:
            try:
                priority_fee = w3.eth.max_priority_fee
            except Exception:
                priority_fee = w3.to_wei(1, "gwei")
            params["maxFeePerGas"] = base_fee * 2 + priority_fee
            params["maxPriorityFeePerGas"] = priority_fee
            return params
    except Exception:
        pass

    params["gasPrice"] = w3.eth.gas_price
    return params


def _estimate_gas(w3, tx, buffer=1.2):
    """
    Estimate gas for a transaction with a safety buffer.
    Falls back to 500000 if estimation fails (FHE ops are gas-heavy).
    """
    try:
        estimate = w3.eth.estimate_gas(tx)
        return int(estimate * buffer)
    except Exception:
        return 500000


def _submit(action, w3, account, call):
    """Build, sign and send a contract call; wait for the receipt."""
    try:
        tx_params = _build_tx_params(w3, account.address)
        tx_params["nonce"] = w3.eth.get_transaction_count(account.address)
        tx = call.build_transaction(tx_params)
        tx["gas"] = _estimate_gas(w3, tx)

        signed = account.sign_transaction(tx)
        tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
        receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=120)
    except VaultGuardError:
        raise
    except Exception as e:
        raise VaultWriteError(action, str(e)) from e

    tx_hex = Web3.to_hex(receipt["transactionHash"])
    if receipt["status"] != 1:
        raise VaultWriteError(action, f"transaction reverted: {tx_hex}", tx_hash=tx_hex)

    return {
        "action": action,
        "tx_hash": tx_hex,
        "from": account.address,
        "status": "confirmed",
        "block_number": receipt["blockNumber"],
        "gas_used": receipt["gasUsed"],
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "explorer_url": f"{CHAIN['explorer']}/tx/{tx_hex}",
    }


# ============================================================
# Deposit
# ============================================================

def approve_token(token, amount, decimals=None, vault_address=None, infinite=False,
                  w3=None, private_key=None):
    """
    Approve the vault to pull `amount` of `token`. Skips the transaction
    when the current allowance already covers it.
    """
    vault_address = _require_vault(vault_address)
    token = require_address(token, "Token address")
    if decimals is None:
        decimals = resolve_token_metadata(token).decimals
    amount_raw = parse_amount(amount, decimals)

    w3, account = _connect(w3, private_key)
    erc20 = w3.eth.contract(address=token, abi=ERC20_ABI)
    try:
        allowance = erc20.functions.allowance(account.address, vault_address).call()
    except Exception as e:
        raise VaultWriteError("Approval", str(e)) from e

    if allowance >= amount_raw:
        return {
            "action": "Approval",
            "status": "already_approved",
            "token": token,
            "allowance": str(allowance),
        }

    approve_amount = MAX_UINT256 if infinite else amount_raw
    result = _submit("Approval", w3, account,
                     erc20.functions.approve(vault_address, approve_amount))
    result.update({"token": token, "amount": str(approve_amount)})
    return result


def deposit(token, amount, decimals=None, encryption=None, vault_address=None,
            w3=None, private_key=None):
    """Deposit `amount` (human units) of `token` with an encrypted amount payload."""
    vault_address = _require_vault(vault_address)
    if decimals is None:
        decimals = resolve_token_metadata(token).decimals
    args = build_deposit_args(token, amount, decimals, encryption)

    w3, account = _connect(w3, private_key)
    vault = w3.eth.contract(address=vault_address, abi=VAULT_GUARD_ABI)
    result = _submit("Deposit", w3, account, vault.functions.deposit(*args.contract_args()))
    result.update({
        "token": args.token,
        "amount": str(args.amount),
        "payload": args.payload.to_dict(),
    })
    return result


# ============================================================
# Payroll
# ============================================================

def schedule_payroll(alias, total_amount, duration_days, token, decimals=None,
                     recipient_hint=ZERO_ADDRESS, encryption=None, vault_address=None,
                     w3=None, private_key=None):
    """
    Schedule a payroll stream paying `total_amount` over `duration_days`.
    The returned stream_id comes from a pre-flight eth_call of the same
    transaction and is only as stable as the stream list itself.
    """
    vault_address = _require_vault(vault_address)
    if decimals is None:
        decimals = resolve_token_metadata(token).decimals
    args = build_schedule_args(alias, total_amount, decimals, duration_days, token,
                               encryption, recipient_hint)

    w3, account = _connect(w3, private_key)
    vault = w3.eth.contract(address=vault_address, abi=VAULT_GUARD_ABI)
    call = vault.functions.schedulePayroll(*args.contract_args())
    try:
        stream_id = call.call({"from": account.address})
    except Exception as e:
        raise VaultWriteError("Schedule", str(e)) from e

    result = _submit("Schedule", w3, account, call)
    result.update({
        "stream_id": stream_id,
        "encrypted_recipient": args.encrypted_recipient_hash,
        "rate_per_second": str(args.rate_per_second),
        "duration_seconds": args.duration_seconds,
        "token": args.token,
    })
    return result


def claim_payroll_stream(alias, amount, stream_id, decimals=None, snapshot=None, epoch=None,
                         owner=None, encryption=None, vault_address=None,
                         w3=None, private_key=None):
    """
    Claim `amount` from a stream into the shielded bridge.

    With a `snapshot`, the stream id is checked against it (and against
    `epoch`, the snapshot epoch the id was picked from) and decimals default
    to the stream token's.
    """
    vault_address = _require_vault(vault_address)
    if snapshot is not None:
        view = snapshot.require_stream(require_stream_id(stream_id), epoch)
        if decimals is None:
            decimals = view.decimals
    if decimals is None:
        raise ValidationError("Token decimals are required when no snapshot is given.")
    require_alias(alias)
    require_stream_id(stream_id)
    parse_amount(amount, decimals)
    if owner is not None:
        owner = require_address(owner, "Vault owner address")

    w3, account = _connect(w3, private_key)
    args = build_claim_args(alias, amount, decimals, stream_id,
                            owner or account.address, encryption)

    vault = w3.eth.contract(address=vault_address, abi=VAULT_GUARD_ABI)
    result = _submit("Claim", w3, account,
                     vault.functions.claimPayrollStream(*args.contract_args()))
    result.update({
        "stream_id": args.stream_id,
        "amount": str(args.amount),
        "payload": args.encrypted_amount_payload.to_dict(),
        "transfer": args.transfer.to_dict(),
    })
    return result
