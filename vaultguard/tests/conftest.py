import pytest

from vaultguard.tests.factories import (
    USDC, WBTC, FakeReader, SpyEncryption, hash32, make_stream, make_transfer,
)
from vaultguard.types import AssetRecord


@pytest.fixture
def spy_encryption():
    return SpyEncryption()


@pytest.fixture
def streams():
    return [
        make_stream(0),
        make_stream(1, token=WBTC, rate=2, start=0, last_withdrawal=0, end=0),
    ]


@pytest.fixture
def transfers():
    return [
        make_transfer(0, timestamp=900, processed=True, zcash_tx_id=hash32(0xAA)),
        make_transfer(1, timestamp=950, processed=True),
        make_transfer(2, timestamp=990),
    ]


@pytest.fixture
def reader(streams, transfers):
    return FakeReader(
        assets=[
            AssetRecord(USDC, 123456789, 6000),
            AssetRecord(WBTC, 42, 4000),
        ],
        streams=streams,
        transfers=transfers,
        commitments=[hash32(i) for i in range(1, 11)],
    )
