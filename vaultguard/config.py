"""
VaultGuard - Configuration and Constants
Chain config, contract addresses, ABIs, refresh cadence

All configuration can be overridden via environment variables:
- VAULTGUARD_RPC_URL / VAULTGUARD_CHAIN_ID - chain endpoint (default: Fhenix Helium)
- VAULT_GUARD_ADDRESS - VaultGuard contract address
- ZCASH_BRIDGE_ADDRESS - bridge contract (default: read from the vault contract)
- VG_TOKEN_ADDRESS - native protocol token address
- VAULTGUARD_OWNER - vault owner address (or derived from private key)
- VAULTGUARD_PRIVATE_KEY / ETH_PRIVATE_KEY - signing key for write operations
- VAULTGUARD_ENCRYPTION_MODE - "placeholder" or "remote" (no default)
- VAULTGUARD_ENCRYPTION_URL / VAULTGUARD_ENCRYPTION_API_KEY - remote encryption service
- VAULTGUARD_REFRESH_INTERVAL / VAULTGUARD_TICK_INTERVAL - watch loop cadence (seconds)
- VAULTGUARD_RECENT_LIMIT - number of recent bridge commitments to display
"""

import os
import json
import subprocess


def _load_dotenv():
    """Load .env file from the project root if it exists. No dependencies required."""
    env_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), ".env")
    if not os.path.isfile(env_path):
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()
            # Don't override existing env vars
            if key and key not in os.environ:
                os.environ[key] = value


_load_dotenv()

# ============================================================
# Chain Configuration
# ============================================================

CHAIN = {
    "name": "Fhenix Helium",
    "chain_id": int(os.environ.get("VAULTGUARD_CHAIN_ID", "8008135")),
    "rpc": os.environ.get("VAULTGUARD_RPC_URL", "https://api.helium.fhenix.zone"),
    "explorer": os.environ.get("VAULTGUARD_EXPLORER_URL",
                               "https://explorer.helium.fhenix.zone"),
}

# Safety: reject mainnet chain IDs, write handlers sign real transactions
MAINNET_CHAIN_IDS = {1, 8453, 42161, 10, 137, 43114, 56}  # ETH, Base, Arb, OP, Polygon, Avalanche, BSC
if CHAIN["chain_id"] in MAINNET_CHAIN_IDS:
    raise RuntimeError(
        f"SAFETY: Mainnet chain ID {CHAIN['chain_id']} configured via VAULTGUARD_CHAIN_ID. "
        f"This tool is testnet-only."
    )

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

VAULT_GUARD_ADDRESS = os.environ.get("VAULT_GUARD_ADDRESS", "")
ZCASH_BRIDGE_ADDRESS = os.environ.get("ZCASH_BRIDGE_ADDRESS", "")
VG_TOKEN_ADDRESS = os.environ.get("VG_TOKEN_ADDRESS", "")

# ============================================================
# Refresh cadence
# ============================================================

REFRESH_INTERVAL = int(os.environ.get("VAULTGUARD_REFRESH_INTERVAL", "30"))
TICK_INTERVAL = int(os.environ.get("VAULTGUARD_TICK_INTERVAL", "15"))
RECENT_LIMIT = int(os.environ.get("VAULTGUARD_RECENT_LIMIT", "8"))

# ============================================================
# Encryption backend
# ============================================================

ENCRYPTION_MODE = os.environ.get("VAULTGUARD_ENCRYPTION_MODE", "")
ENCRYPTION_URL = os.environ.get("VAULTGUARD_ENCRYPTION_URL", "")
ENCRYPTION_API_KEY = os.environ.get("VAULTGUARD_ENCRYPTION_API_KEY", "")

# ============================================================
# Wallet
# ============================================================

def get_private_key():
    """
    Retrieve the signing key for write operations. Resolution order:
    1. VAULTGUARD_PRIVATE_KEY env var
    2. ETH_PRIVATE_KEY env var              (common convention)
    3. Secret helper script                 (if VAULTGUARD_SECRET_CMD is set)
    """
    key = os.environ.get("VAULTGUARD_PRIVATE_KEY") or os.environ.get("ETH_PRIVATE_KEY")
    if key:
        return key if key.startswith("0x") else f"0x{key}"

    # Secret helper command (KeePassXC, Vault, 1Password CLI, ...)
    # Example: VAULTGUARD_SECRET_CMD="op read op://Vault/fhenix-key/password"
    secret_cmd = os.environ.get("VAULTGUARD_SECRET_CMD")
    if secret_cmd:
        try:
            result = subprocess.run(
                secret_cmd, shell=True,
                capture_output=True, text=True, timeout=10
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise RuntimeError(f"VAULTGUARD_SECRET_CMD failed: {e}") from e
        key = result.stdout.strip()
        if key and len(key) >= 64 and result.returncode == 0:
            return key if key.startswith("0x") else f"0x{key}"

    raise RuntimeError(
        "No private key found. Set the VAULTGUARD_PRIVATE_KEY environment variable.\n"
        "Example: export VAULTGUARD_PRIVATE_KEY=0xYourPrivateKeyHere"
    )


def _resolve_owner():
    """
    Resolve the vault owner address. Order:
    1. VAULTGUARD_OWNER env var
    2. Derived from private key (if available)
    Returns None if neither is available (reads fall back to demo data).
    """
    addr = os.environ.get("VAULTGUARD_OWNER")
    if addr:
        return addr
    try:
        from web3 import Web3
        key = get_private_key()
        return Web3().eth.account.from_key(key).address
    except (RuntimeError, ValueError):
        return None


VAULT_OWNER = _resolve_owner()


# ============================================================
# ABIs
# ============================================================

# Encrypted input struct (Fhenix inEuint*): (bytes data, int32 securityZone)
_ENCRYPTED_INPUT = """{"name": "%s", "type": "tuple", "components": [
    {"name": "data", "type": "bytes"},
    {"name": "securityZone", "type": "int32"}
]}"""

_SHIELDED_TRANSFER_COMPONENTS = """[
    {"name": "vault", "type": "address"},
    {"name": "recipientDiversifier", "type": "bytes32"},
    {"name": "recipientPk", "type": "bytes32"},
    {"name": "metadata", "type": "bytes"},
    {"name": "encryptedAmount", "type": "bytes32"}
]"""

VAULT_GUARD_ABI = json.loads("""[
    {
        "inputs": [{"name": "vault", "type": "address"}],
        "name": "getVaultTokens",
        "outputs": [{"name": "", "type": "tuple[]", "components": [
            {"name": "token", "type": "address"},
            {"name": "balance", "type": "uint256"},
            {"name": "targetWeightBps", "type": "uint16"}
        ]}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "zcashBridge",
        "outputs": [{"name": "", "type": "address"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"name": "vault", "type": "address"}],
        "name": "getPayrollStreamCount",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [
            {"name": "vault", "type": "address"},
            {"name": "index", "type": "uint256"}
        ],
        "name": "getPayrollStream",
        "outputs": [
            {"name": "encryptedRecipient", "type": "bytes32"},
            {"name": "token", "type": "address"},
            {"name": "rateHintPerSecond", "type": "uint256"},
            {"name": "startTime", "type": "uint64"},
            {"name": "lastWithdrawalTime", "type": "uint64"},
            {"name": "endTime", "type": "uint64"},
            {"name": "active", "type": "bool"}
        ],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [
            {"name": "token", "type": "address"},
            {"name": "amount", "type": "uint256"},
            %s
        ],
        "name": "deposit",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [
            {"name": "encryptedRecipient", "type": "bytes32"},
            %s,
            {"name": "recipientHint", "type": "address"},
            {"name": "rateHintPerSecond", "type": "uint256"},
            {"name": "token", "type": "address"},
            {"name": "duration", "type": "uint64"}
        ],
        "name": "schedulePayroll",
        "outputs": [{"name": "streamId", "type": "uint256"}],
        "stateMutability": "nonpayable",
        "type": "function"
    },
    {
        "inputs": [
            {"name": "vault", "type": "address"},
            {"name": "streamId", "type": "uint256"},
            {"name": "amountHint", "type": "uint256"},
            %s,
            {"name": "transfer", "type": "tuple", "components": %s}
        ],
        "name": "claimPayrollStream",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    }
]""" % (
    _ENCRYPTED_INPUT % "encryptedAmount",
    _ENCRYPTED_INPUT % "encryptedRate",
    _ENCRYPTED_INPUT % "encryptedAmount",
    _SHIELDED_TRANSFER_COMPONENTS,
))

ZEC_BRIDGE_ABI = json.loads("""[
    {
        "inputs": [],
        "name": "getCommitments",
        "outputs": [{"name": "", "type": "bytes32[]"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "queueLength",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"name": "index", "type": "uint256"}],
        "name": "getQueuedTransfer",
        "outputs": [
            {"name": "transfer", "type": "tuple", "components": %s},
            {"name": "timestamp", "type": "uint64"},
            {"name": "processed", "type": "bool"},
            {"name": "commitment", "type": "bytes32"},
            {"name": "zcashTxId", "type": "bytes32"}
        ],
        "stateMutability": "view",
        "type": "function"
    }
]""" % _SHIELDED_TRANSFER_COMPONENTS)

# Minimal ERC20 ABI (approval before deposit)
ERC20_ABI = json.loads("""[
    {"inputs":[],"name":"decimals","outputs":[{"name":"","type":"uint8"}],"stateMutability":"view","type":"function"},
    {"inputs":[{"name":"spender","type":"address"},{"name":"amount","type":"uint256"}],"name":"approve","outputs":[{"name":"","type":"bool"}],"stateMutability":"nonpayable","type":"function"},
    {"inputs":[{"name":"owner","type":"address"},{"name":"spender","type":"address"}],"name":"allowance","outputs":[{"name":"","type":"uint256"}],"stateMutability":"view","type":"function"}
]""")
