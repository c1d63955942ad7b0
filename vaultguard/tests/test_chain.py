import pytest
from web3 import Web3

from vaultguard.chain import (
    decode_commitments, decode_queued_transfer, decode_stream, decode_uint, decode_vault_tokens,
)
from vaultguard.errors import ReadShapeError
from vaultguard.tests.factories import OWNER, USDC


def _raw_stream(**overrides):
    raw = {
        "recipient": b"\x01" * 32,
        "token": USDC,
        "rate": 10,
        "start": 100,
        "last": 100,
        "end": 1000,
        "active": True,
    }
    raw.update(overrides)
    return (raw["recipient"], raw["token"], raw["rate"], raw["start"], raw["last"],
            raw["end"], raw["active"])


def _raw_transfer(processed=False, txid=b"\x00" * 32):
    transfer = (OWNER, b"\x02" * 32, b"\x03" * 32, b"payroll:alice", b"\x04" * 32)
    return (transfer, 1700000000, processed, b"\x05" * 32, txid)


def test_decode_stream():
    stream = decode_stream(3, _raw_stream())
    assert stream.id == 3
    assert stream.encrypted_recipient == "0x" + "01" * 32
    assert stream.token == Web3.to_checksum_address(USDC)
    assert (stream.start_time, stream.end_time, stream.active) == (100, 1000, True)


@pytest.mark.parametrize("raw", [
    _raw_stream()[:6],
    _raw_stream(token="0x1234"),
    _raw_stream(rate=-1),
    _raw_stream(active=1),
    _raw_stream(recipient=b"\x01" * 31),
    None,
])
def test_decode_stream_rejects_bad_shapes(raw):
    with pytest.raises(ReadShapeError) as exc:
        decode_stream(0, raw)
    assert "getPayrollStream" in str(exc.value)


def test_decode_queued_transfer():
    transfer = decode_queued_transfer(1, _raw_transfer(processed=True))
    assert transfer.index == 1
    assert transfer.processed is True
    assert transfer.zcash_tx_id == "0x" + "00" * 32
    assert transfer.metadata == "0x" + b"payroll:alice".hex()
    assert transfer.commitment == "0x" + "05" * 32


def test_decode_queued_transfer_rejects_flat_tuple():
    with pytest.raises(ReadShapeError):
        decode_queued_transfer(0, (OWNER, 1, False, b"\x05" * 32, b"\x00" * 32))


def test_decode_vault_tokens():
    records = decode_vault_tokens([(USDC, 5, 6000)])
    assert records[0].encrypted_balance == 5
    assert records[0].target_weight_bps == 6000
    with pytest.raises(ReadShapeError):
        decode_vault_tokens([(USDC, 5)])
    with pytest.raises(ReadShapeError):
        decode_vault_tokens("nope")


def test_decode_commitments_and_uint():
    assert decode_commitments([b"\x09" * 32]) == ["0x" + "09" * 32]
    with pytest.raises(ReadShapeError):
        decode_commitments(b"\x09" * 32)
    assert decode_uint(4, "queueLength") == 4
    with pytest.raises(ReadShapeError):
        decode_uint("4", "queueLength")
