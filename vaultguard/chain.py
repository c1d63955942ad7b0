"""
VaultGuard - Chain Reads
Async contract reads against the VaultGuard and Zcash bridge contracts.

Raw web3 results are loosely-typed tuples; every decode_* function checks
the shape before building a typed record and raises ReadShapeError otherwise.
"""

from web3 import AsyncWeb3, Web3

from .config import CHAIN, VAULT_GUARD_ABI, ZEC_BRIDGE_ABI, ZERO_ADDRESS
from .errors import ReadShapeError
from .types import AssetRecord, BridgeTransfer, VaultStream


# ============================================================
# Shape helpers
# ============================================================

def _to_hex32(value, operation, field):
    if isinstance(value, str):
        try:
            raw = bytes.fromhex(value[2:] if value.startswith("0x") else value)
        except ValueError:
            raise ReadShapeError(operation, f"{field} is not hex: {value!r}") from None
    elif isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
    else:
        raise ReadShapeError(operation, f"{field} must be bytes32, got {type(value).__name__}")
    if len(raw) != 32:
        raise ReadShapeError(operation, f"{field} must be 32 bytes, got {len(raw)}")
    return "0x" + raw.hex()


def _to_hex_bytes(value, operation, field):
    if isinstance(value, str):
        return value if value.startswith("0x") else f"0x{value}"
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    raise ReadShapeError(operation, f"{field} must be bytes, got {type(value).__name__}")


def _to_address(value, operation, field):
    if not isinstance(value, str) or not Web3.is_address(value):
        raise ReadShapeError(operation, f"{field} is not an address: {value!r}")
    return Web3.to_checksum_address(value)


def _to_uint(value, operation, field):
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ReadShapeError(operation, f"{field} must be an unsigned integer, got {value!r}")
    return value


def _to_bool(value, operation, field):
    if not isinstance(value, bool):
        raise ReadShapeError(operation, f"{field} must be a bool, got {value!r}")
    return value


def _as_sequence(raw, length, operation):
    if not isinstance(raw, (list, tuple)) or len(raw) != length:
        raise ReadShapeError(operation, f"expected a {length}-tuple, got {raw!r}")
    return raw


# ============================================================
# Decoders
# ============================================================

def decode_uint(raw, operation):
    return _to_uint(raw, operation, "result")


def decode_vault_tokens(raw):
    op = "getVaultTokens"
    if not isinstance(raw, (list, tuple)):
        raise ReadShapeError(op, f"expected a list, got {type(raw).__name__}")
    records = []
    for i, entry in enumerate(raw):
        token, balance, weight = _as_sequence(entry, 3, op)
        records.append(AssetRecord(
            token=_to_address(token, op, f"[{i}].token"),
            encrypted_balance=_to_uint(balance, op, f"[{i}].balance"),
            target_weight_bps=_to_uint(weight, op, f"[{i}].targetWeightBps"),
        ))
    return records


def decode_stream(index, raw):
    op = "getPayrollStream"
    (recipient, token, rate, start, last_withdrawal,
     end, active) = _as_sequence(raw, 7, op)
    return VaultStream(
        id=index,
        encrypted_recipient=_to_hex32(recipient, op, "encryptedRecipient"),
        token=_to_address(token, op, "token"),
        rate_hint_per_second=_to_uint(rate, op, "rateHintPerSecond"),
        start_time=_to_uint(start, op, "startTime"),
        last_withdrawal_time=_to_uint(last_withdrawal, op, "lastWithdrawalTime"),
        end_time=_to_uint(end, op, "endTime"),
        active=_to_bool(active, op, "active"),
    )


def decode_queued_transfer(index, raw):
    op = "getQueuedTransfer"
    transfer, timestamp, processed, commitment, zcash_tx_id = _as_sequence(raw, 5, op)
    vault, diversifier, pk, metadata, encrypted_amount = _as_sequence(transfer, 5, op)
    return BridgeTransfer(
        index=index,
        vault=_to_address(vault, op, "transfer.vault"),
        commitment=_to_hex32(commitment, op, "commitment"),
        timestamp=_to_uint(timestamp, op, "timestamp"),
        processed=_to_bool(processed, op, "processed"),
        zcash_tx_id=_to_hex32(zcash_tx_id, op, "zcashTxId"),
        recipient_diversifier=_to_hex32(diversifier, op, "transfer.recipientDiversifier"),
        recipient_pk=_to_hex32(pk, op, "transfer.recipientPk"),
        metadata=_to_hex_bytes(metadata, op, "transfer.metadata"),
        encrypted_amount=_to_hex32(encrypted_amount, op, "transfer.encryptedAmount"),
    )


def decode_commitments(raw):
    op = "getCommitments"
    if not isinstance(raw, (list, tuple)):
        raise ReadShapeError(op, f"expected a list, got {type(raw).__name__}")
    return [_to_hex32(c, op, f"[{i}]") for i, c in enumerate(raw)]


# ============================================================
# Reader
# ============================================================

def get_async_web3(rpc_url=None):
    """Get an AsyncWeb3 instance for the configured chain"""
    return AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(
        rpc_url or CHAIN["rpc"], request_kwargs={"timeout": 15}
    ))


class VaultReader:
    """
    Read-only view of the VaultGuard contract and its Zcash bridge.
    Every method is a single contract call returning a decoded record.
    """

    def __init__(self, vault_address, w3=None, rpc_url=None):
        self.w3 = w3 or get_async_web3(rpc_url)
        self.vault_address = Web3.to_checksum_address(vault_address)
        self.vault = self.w3.eth.contract(address=self.vault_address, abi=VAULT_GUARD_ABI)
        self._bridges = {}

    def _bridge(self, bridge_address):
        key = bridge_address.lower()
        if key not in self._bridges:
            self._bridges[key] = self.w3.eth.contract(
                address=Web3.to_checksum_address(bridge_address), abi=ZEC_BRIDGE_ABI
            )
        return self._bridges[key]

    async def get_vault_tokens(self, owner):
        raw = await self.vault.functions.getVaultTokens(Web3.to_checksum_address(owner)).call()
        return decode_vault_tokens(raw)

    async def get_bridge_address(self):
        raw = await self.vault.functions.zcashBridge().call()
        address = _to_address(raw, "zcashBridge", "result")
        if address.lower() == ZERO_ADDRESS:
            return None
        return address

    async def get_stream_count(self, owner):
        raw = await self.vault.functions.getPayrollStreamCount(
            Web3.to_checksum_address(owner)).call()
        return decode_uint(raw, "getPayrollStreamCount")

    async def get_stream(self, owner, index):
        raw = await self.vault.functions.getPayrollStream(
            Web3.to_checksum_address(owner), index).call()
        return decode_stream(index, raw)

    async def get_queue_length(self, bridge_address):
        raw = await self._bridge(bridge_address).functions.queueLength().call()
        return decode_uint(raw, "queueLength")

    async def get_queued_transfer(self, bridge_address, index):
        raw = await self._bridge(bridge_address).functions.getQueuedTransfer(index).call()
        return decode_queued_transfer(index, raw)

    async def get_commitments(self, bridge_address):
        raw = await self._bridge(bridge_address).functions.getCommitments().call()
        return decode_commitments(raw)
