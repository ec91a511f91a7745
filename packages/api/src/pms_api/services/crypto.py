# This project was developed with assistance from AI tools.
"""Decrypt primitive for beneficiary PII envelopes.

Envelopes are AES-256-GCM, stored as ``{"alg", "iv", "tag", "data"}`` with
base64 fields. The service only ever decrypts; encryption happens in the
write path of the beneficiary subsystem.

Silent failure is NOT acceptable: anything other than a missing envelope
raises ``DecryptionError`` so integrity problems surface instead of
turning into blank fields.
"""

import base64
import binascii
import logging

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..core.config import settings

logger = logging.getLogger(__name__)

ALGORITHM = "aes-256-gcm"

_aesgcm: AESGCM | None = None


class DecryptionError(Exception):
    """Raised when an envelope cannot be decrypted.

    Usually a key mismatch (rotation without re-encryption) or corrupted
    ciphertext. Callers must treat it as fatal for the record.
    """


def _decode_key(value: str) -> bytes:
    """Decode a key given as base64 or hex."""
    try:
        key = base64.b64decode(value, validate=True)
        if len(key) == 32:
            return key
    except (binascii.Error, ValueError):
        pass
    try:
        return bytes.fromhex(value)
    except ValueError:
        return value.encode("utf-8")


def _get_aesgcm() -> AESGCM:
    global _aesgcm  # noqa: PLW0603
    if _aesgcm is None:
        if not settings.BENEFICIARY_ENC_KEY:
            raise DecryptionError("BENEFICIARY_ENC_KEY is not configured")
        key = _decode_key(settings.BENEFICIARY_ENC_KEY)
        if len(key) != 32:
            raise DecryptionError("BENEFICIARY_ENC_KEY must decode to a 32-byte key")
        _aesgcm = AESGCM(key)
    return _aesgcm


def reset_cipher() -> None:
    """Drop the cached cipher so the next call re-reads the key."""
    global _aesgcm  # noqa: PLW0603
    _aesgcm = None


def decrypt_field(envelope: dict | None) -> str | None:
    """Decrypt one envelope. ``None`` (or an empty envelope) decrypts to ``None``.

    Raises:
        DecryptionError: malformed envelope, wrong algorithm, wrong key, or
            failed authentication tag.
    """
    if not envelope:
        return None
    if not isinstance(envelope, dict):
        raise DecryptionError("Envelope must be an object")

    alg = envelope.get("alg")
    if alg != ALGORITHM:
        raise DecryptionError(f"Unsupported envelope algorithm: {alg!r}")

    try:
        iv = base64.b64decode(envelope["iv"])
        tag = base64.b64decode(envelope["tag"])
        data = base64.b64decode(envelope["data"])
    except (KeyError, TypeError, binascii.Error) as exc:
        raise DecryptionError("Malformed envelope") from exc

    try:
        return _get_aesgcm().decrypt(iv, data + tag, None).decode("utf-8")
    except InvalidTag as exc:
        raise DecryptionError("Envelope failed authentication") from exc
    except ValueError as exc:
        raise DecryptionError(f"Envelope could not be decrypted: {exc}") from exc
