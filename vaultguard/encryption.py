"""
VaultGuard - Encryption Backends
Turns plaintext hints into EncryptedPayload values for contract calls.

Two backends:
  - RemoteEncryption: an external FHE encryption service over HTTP
  - PlaceholderEncryption: zero-padded big-endian plaintext, NOT a ciphertext

There is no implicit default: VAULTGUARD_ENCRYPTION_MODE must name one.
"""

import sys
import requests

from .config import ENCRYPTION_MODE, ENCRYPTION_URL, ENCRYPTION_API_KEY
from .errors import EncryptionError, EncryptionUnavailableError, ValidationError
from .types import EncryptedPayload

PAYLOAD_BYTES = 32
MAX_UINT256 = 2**256 - 1


# ============================================================
# Fixed-width encoding
# ============================================================

def encode_placeholder(value):
    """Encode an unsigned integer as 0x + 64 hex digits (big-endian, zero-padded)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"Payload value must be an integer, got {type(value).__name__}")
    if value < 0 or value > MAX_UINT256:
        raise ValidationError(f"Payload value {value} does not fit in {PAYLOAD_BYTES} bytes")
    return "0x" + value.to_bytes(PAYLOAD_BYTES, "big").hex()


def decode_placeholder(data):
    """Inverse of encode_placeholder."""
    if isinstance(data, EncryptedPayload):
        data = data.data
    hex_part = data[2:] if data.startswith("0x") else data
    if len(hex_part) != PAYLOAD_BYTES * 2:
        raise ValidationError(f"Payload must be {PAYLOAD_BYTES} bytes, got {len(hex_part) // 2}")
    try:
        return int.from_bytes(bytes.fromhex(hex_part), "big")
    except ValueError as e:
        raise ValidationError(f"Payload is not valid hex: {data}") from e


# ============================================================
# Backends
# ============================================================

class PlaceholderEncryption:
    """Deterministic stand-in. Offers no confidentiality."""

    mode = "placeholder"

    def __init__(self, warn=True):
        self._warned = not warn

    def encrypt(self, value, security_zone=0):
        if not self._warned:
            print("Warning: placeholder encryption in use, payloads carry plaintext amounts",
                  file=sys.stderr)
            self._warned = True
        return EncryptedPayload(encode_placeholder(value), security_zone)


class RemoteEncryption:
    """
    Client for an external encryption service.

    POST {url}/encrypt  {"value": "<int>", "type": "uint256", "securityZone": z}
      -> {"data": "0x...", "securityZone": z}
    """

    mode = "remote"

    def __init__(self, url, api_key=None, timeout=10, session=None):
        if not url:
            raise EncryptionUnavailableError(
                "remote", "Remote encryption requires VAULTGUARD_ENCRYPTION_URL")
        self.url = url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def encrypt(self, value, security_zone=0):
        # validates range before any request goes out
        encode_placeholder(value)
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        body = {"value": str(value), "type": "uint256", "securityZone": security_zone}
        try:
            resp = self.session.post(f"{self.url}/encrypt", json=body,
                                     headers=headers, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as e:
            raise EncryptionError(f"Encryption service request failed: {e}") from e
        except ValueError as e:
            raise EncryptionError(f"Encryption service returned invalid JSON: {e}") from e

        ciphertext = data.get("data") if isinstance(data, dict) else None
        if not isinstance(ciphertext, str) or not ciphertext.startswith("0x"):
            raise EncryptionError(f"Encryption service response missing hex 'data': {data!r}")
        try:
            bytes.fromhex(ciphertext[2:])
        except ValueError as e:
            raise EncryptionError("Encryption service returned non-hex data") from e
        try:
            zone = int(data.get("securityZone", security_zone))
        except (TypeError, ValueError) as e:
            raise EncryptionError(
                f"Encryption service returned invalid securityZone: {data.get('securityZone')!r}"
            ) from e
        return EncryptedPayload(ciphertext, zone)


def get_encryption_provider(mode=None, url=None, api_key=None):
    """Build the configured backend. Raises when no mode is set."""
    mode = (mode if mode is not None else ENCRYPTION_MODE).strip().lower()
    if mode == "placeholder":
        return PlaceholderEncryption()
    if mode == "remote":
        return RemoteEncryption(url or ENCRYPTION_URL, api_key or ENCRYPTION_API_KEY or None)
    raise EncryptionUnavailableError(mode)
