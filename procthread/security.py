"""Payload signing primitives.

Signed payloads stop a process that can write to a child's stdin, or tamper
with a payload in transit, from getting arbitrary tasks decoded and run.
The configured secret is never used directly as the MAC key; a dedicated
signing key is derived from it with HKDF-SHA256.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Final

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

SIGNING_KEY_SALT: Final[bytes] = b"procthread-payload-v1"
SIGNING_KEY_INFO: Final[bytes] = b"procthread task signature"
SIGNING_KEY_LENGTH: Final[int] = 32


def hkdf_sha256(ikm: bytes, salt: bytes, info: bytes, length: int) -> bytes:
    """Derive a key using HKDF-SHA256 via native cryptography library."""
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=length,
        salt=salt,
        info=info,
    )
    return hkdf.derive(ikm)


def derive_signing_key(secret: bytes) -> bytes:
    """Derive the payload signing key from the shared secret."""
    return hkdf_sha256(secret, SIGNING_KEY_SALT, SIGNING_KEY_INFO, SIGNING_KEY_LENGTH)


def sign_payload(body: bytes, secret: bytes) -> str:
    """Return the hex HMAC-SHA256 tag of ``body``."""
    return hmac.new(derive_signing_key(secret), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature: str | None, secret: bytes) -> bool:
    """Constant-time check of ``signature`` against ``body``."""
    if not signature:
        return False
    expected = sign_payload(body, secret)
    return hmac.compare_digest(expected.encode("ascii"), signature.encode("ascii", errors="replace"))


def verify_crypto_integrity() -> bool:
    """Known answer tests for the primitives used by payload signing.

    Vectors from NIST and RFC 4231 / RFC 5869.
    """
    msg = b"abc"
    expected_sha = "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    if hashlib.sha256(msg).hexdigest() != expected_sha:
        return False

    key = b"key"
    data = b"The quick brown fox jumps over the lazy dog"
    expected_hmac = "f7bc83f430538424b13298e6aa6fb143ef4d59a14946175997479dbc2d1a3cd8"
    if hmac.new(key, data, hashlib.sha256).hexdigest() != expected_hmac:
        return False

    # RFC 5869 test case 1
    okm = hkdf_sha256(
        bytes.fromhex("0b" * 22),
        bytes.fromhex("000102030405060708090a0b0c"),
        bytes.fromhex("f0f1f2f3f4f5f6f7f8f9"),
        42,
    )
    expected_okm = (
        "3cb25f25faacd57a90434f64d0362f2a2d2d0a90cf1a5a4c5db02d56ecc4c5bf34007208d5b887185865"
    )
    return okm.hex() == expected_okm


__all__ = [
    "derive_signing_key",
    "hkdf_sha256",
    "sign_payload",
    "verify_crypto_integrity",
    "verify_signature",
]
