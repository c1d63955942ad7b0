"""
VaultGuard - Asset Metadata
Token address -> display metadata (symbol, name, decimals, reference price).

Display-only heuristic: unlisted tokens resolve to a generic fallback with
18 decimals and a price of 1, which may be wrong for them.
"""

from .config import VG_TOKEN_ADDRESS
from .types import TokenMetadata, VaultAsset

ETH_SENTINEL = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"

TOKEN_METADATA = {
    ETH_SENTINEL: TokenMetadata("ETH", "Ethereum", 18, 2300),
    "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48": TokenMetadata("USDC", "USD Coin", 6, 1),
    "0x2260fac5e5542a773aa44fbcfedf7c193bc2c599": TokenMetadata("WBTC", "Wrapped BTC", 8, 42000),
}

NATIVE_TOKEN_METADATA = TokenMetadata("VG", "VaultGuard Token", 18, 1)

FALLBACK_METADATA = TokenMetadata("ASSET", "Unknown Asset", 18, 1)

# Shown when no vault contract is configured
DEMO_ASSETS = (
    VaultAsset(ETH_SENTINEL, int(45.2 * 10**18), "ETH", "Ethereum", 18, 2300, 4500),
    VaultAsset("0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48", 104500 * 10**6,
               "USDC", "USD Coin", 6, 1, 3500),
    VaultAsset("0x2260fac5e5542a773aa44fbcfedf7c193bc2c599", int(1.5 * 10**8),
               "WBTC", "Wrapped BTC", 8, 42000, 2000),
)


def resolve_token_metadata(token, native_token=VG_TOKEN_ADDRESS):
    """Resolve display metadata for a token address. Never raises."""
    if not isinstance(token, str):
        return FALLBACK_METADATA
    key = token.strip().lower()
    meta = TOKEN_METADATA.get(key)
    if meta is not None:
        return meta
    if native_token and key == native_token.strip().lower():
        return NATIVE_TOKEN_METADATA
    return FALLBACK_METADATA


def build_vault_asset(record, native_token=VG_TOKEN_ADDRESS):
    """Join an AssetRecord with its resolved metadata."""
    meta = resolve_token_metadata(record.token, native_token)
    return VaultAsset(
        token=record.token,
        encrypted_balance=record.encrypted_balance,
        symbol=meta.symbol,
        name=meta.name,
        decimals=meta.decimals,
        price_usd=meta.price_usd,
        target_weight_bps=record.target_weight_bps,
    )
