# This project was developed with assistance from AI tools.
"""Tests for the AES-256-GCM envelope decrypt primitive."""

import pytest

from pms_api.core.config import settings
from pms_api.services import crypto
from pms_api.services.crypto import DecryptionError, decrypt_field

from .factories import TEST_KEY, TEST_KEY_B64, encrypt


@pytest.fixture(autouse=True)
def _key(monkeypatch):
    monkeypatch.setattr(settings, "BENEFICIARY_ENC_KEY", TEST_KEY_B64)
    crypto.reset_cipher()
    yield
    crypto.reset_cipher()


def test_decrypts_envelope():
    assert decrypt_field(encrypt("Amina")) == "Amina"


def test_unicode_round_trip():
    assert decrypt_field(encrypt("Žaneta Ćirić")) == "Žaneta Ćirić"


def test_none_and_empty_envelope_decrypt_to_none():
    assert decrypt_field(None) is None
    assert decrypt_field({}) is None


def test_hex_key_accepted(monkeypatch):
    monkeypatch.setattr(settings, "BENEFICIARY_ENC_KEY", TEST_KEY.hex())
    crypto.reset_cipher()
    assert decrypt_field(encrypt("hex")) == "hex"


def test_wrong_key_raises():
    envelope = encrypt("secret", key=bytes(32))
    with pytest.raises(DecryptionError, match="authentication"):
        decrypt_field(envelope)


def test_tampered_data_raises():
    envelope = encrypt("secret")
    envelope["tag"] = encrypt("other")["tag"]
    with pytest.raises(DecryptionError):
        decrypt_field(envelope)


def test_unsupported_algorithm():
    envelope = encrypt("secret")
    envelope["alg"] = "aes-128-cbc"
    with pytest.raises(DecryptionError, match="Unsupported"):
        decrypt_field(envelope)


def test_malformed_envelope():
    with pytest.raises(DecryptionError, match="Malformed"):
        decrypt_field({"alg": "aes-256-gcm", "iv": "AAAA"})


def test_non_object_envelope():
    with pytest.raises(DecryptionError):
        decrypt_field("not-an-envelope")


def test_missing_key(monkeypatch):
    monkeypatch.setattr(settings, "BENEFICIARY_ENC_KEY", None)
    crypto.reset_cipher()
    with pytest.raises(DecryptionError, match="not configured"):
        decrypt_field(encrypt("x"))


def test_short_key(monkeypatch):
    monkeypatch.setattr(settings, "BENEFICIARY_ENC_KEY", "too-short")
    crypto.reset_cipher()
    with pytest.raises(DecryptionError, match="32-byte"):
        decrypt_field(encrypt("x"))
