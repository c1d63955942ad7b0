import random

import pytest
import requests

from vaultguard.encryption import (
    PlaceholderEncryption, RemoteEncryption, decode_placeholder, encode_placeholder,
    get_encryption_provider,
)
from vaultguard.errors import EncryptionError, EncryptionUnavailableError, ValidationError
from vaultguard.types import EncryptedPayload


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} Server Error")

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.requests.append({"url": url, "json": json, "headers": headers})
        if self.error is not None:
            raise self.error
        return self.response


def test_placeholder_is_fixed_width():
    assert encode_placeholder(0) == "0x" + "0" * 64
    assert encode_placeholder(255) == "0x" + "0" * 62 + "ff"
    assert len(encode_placeholder(2**256 - 1)) == 66


def test_placeholder_decodes_back():
    rng = random.Random(7)
    for value in [0, 1, 2**64, 2**128 - 1] + [rng.randrange(2**128) for _ in range(20)]:
        assert decode_placeholder(encode_placeholder(value)) == value


@pytest.mark.parametrize("value", [-1, 2**256, True, 1.5, "10"])
def test_placeholder_rejects_unencodable_values(value):
    with pytest.raises(ValidationError):
        encode_placeholder(value)


def test_decode_rejects_wrong_length():
    with pytest.raises(ValidationError):
        decode_placeholder("0x1234")
    with pytest.raises(ValidationError):
        decode_placeholder("0x" + "zz" * 32)


def test_placeholder_backend_wraps_payload():
    payload = PlaceholderEncryption(warn=False).encrypt(42, security_zone=1)
    assert isinstance(payload, EncryptedPayload)
    assert payload.security_zone == 1
    assert decode_placeholder(payload) == 42
    data, zone = payload.as_contract_arg()
    assert len(data) == 32 and zone == 1


def test_placeholder_warns_once(capsys):
    backend = PlaceholderEncryption()
    backend.encrypt(1)
    backend.encrypt(2)
    assert capsys.readouterr().err.count("Warning: placeholder encryption") == 1


def test_no_mode_configured_raises():
    with pytest.raises(EncryptionUnavailableError) as exc:
        get_encryption_provider(mode="")
    assert "VAULTGUARD_ENCRYPTION_MODE" in str(exc.value)


def test_unknown_mode_raises():
    with pytest.raises(EncryptionUnavailableError) as exc:
        get_encryption_provider(mode="rot13")
    assert exc.value.mode == "rot13"


def test_explicit_placeholder_mode():
    assert isinstance(get_encryption_provider(mode=" Placeholder "), PlaceholderEncryption)


def test_remote_mode_requires_url():
    with pytest.raises(EncryptionUnavailableError):
        RemoteEncryption("")


def test_remote_encrypt_posts_value():
    session = FakeSession(FakeResponse({"data": "0xdeadbeef", "securityZone": 2}))
    backend = RemoteEncryption("https://fhe.example/", api_key="k", session=session)

    payload = backend.encrypt(1000, security_zone=2)

    assert payload == EncryptedPayload("0xdeadbeef", 2)
    sent = session.requests[0]
    assert sent["url"] == "https://fhe.example/encrypt"
    assert sent["json"] == {"value": "1000", "type": "uint256", "securityZone": 2}
    assert sent["headers"]["Authorization"] == "Bearer k"


def test_remote_validates_before_request():
    session = FakeSession(FakeResponse({"data": "0x00"}))
    with pytest.raises(ValidationError):
        RemoteEncryption("https://fhe.example", session=session).encrypt(-1)
    assert session.requests == []


@pytest.mark.parametrize("session", [
    FakeSession(error=requests.ConnectionError("refused")),
    FakeSession(FakeResponse({}, status=503)),
    FakeSession(FakeResponse(ValueError("not json"))),
    FakeSession(FakeResponse({"data": "plaintext"})),
    FakeSession(FakeResponse({"data": "0xnothex"})),
    FakeSession(FakeResponse({"data": "0xdead", "securityZone": "zone-a"})),
    FakeSession(FakeResponse({"data": "0xdead", "securityZone": None})),
])
def test_remote_failures_raise_encryption_error(session):
    with pytest.raises(EncryptionError):
        RemoteEncryption("https://fhe.example", session=session).encrypt(5)
