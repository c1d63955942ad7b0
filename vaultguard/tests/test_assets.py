from vaultguard.assets import (
    ETH_SENTINEL, FALLBACK_METADATA, NATIVE_TOKEN_METADATA, build_vault_asset,
    resolve_token_metadata,
)
from vaultguard.tests.factories import USDC, WBTC
from vaultguard.types import AssetRecord

NATIVE = "0x3333333333333333333333333333333333333333"


def test_known_tokens_resolve():
    assert resolve_token_metadata(ETH_SENTINEL).symbol == "ETH"
    usdc = resolve_token_metadata(USDC)
    assert (usdc.symbol, usdc.decimals, usdc.price_usd) == ("USDC", 6, 1)
    assert resolve_token_metadata(WBTC).decimals == 8


def test_lookup_ignores_case():
    checksummed = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
    assert resolve_token_metadata(checksummed).symbol == "USDC"
    assert resolve_token_metadata(ETH_SENTINEL.upper().replace("0X", "0x")).symbol == "ETH"


def test_native_token_uses_protocol_metadata():
    assert resolve_token_metadata(NATIVE, native_token=NATIVE) == NATIVE_TOKEN_METADATA
    assert resolve_token_metadata(NATIVE.upper().replace("0X", "0x"),
                                  native_token=NATIVE) == NATIVE_TOKEN_METADATA


def test_unknown_token_falls_back():
    meta = resolve_token_metadata("0x4444444444444444444444444444444444444444", native_token="")
    assert meta == FALLBACK_METADATA
    assert (meta.symbol, meta.name, meta.decimals, meta.price_usd) == ("ASSET", "Unknown Asset", 18, 1)


def test_resolver_never_raises_on_garbage():
    assert resolve_token_metadata(None) == FALLBACK_METADATA
    assert resolve_token_metadata("") == FALLBACK_METADATA
    assert resolve_token_metadata(12345) == FALLBACK_METADATA
    assert resolve_token_metadata("not-an-address") == FALLBACK_METADATA


def test_build_vault_asset_keeps_record_fields():
    asset = build_vault_asset(AssetRecord(WBTC, 77, 2500))
    assert asset.symbol == "WBTC"
    assert asset.decimals == 8
    assert asset.encrypted_balance == 77
    assert asset.target_weight_bps == 2500
    assert asset.to_dict()["encrypted_balance"] == "77"
