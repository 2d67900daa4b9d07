"""Tests for payload signing primitives."""

from __future__ import annotations

from procthread import security

SECRET = b"0123456789abcdef-secret"


def test_crypto_self_test_passes() -> None:
    assert security.verify_crypto_integrity() is True


def test_signing_key_is_derived_not_raw_secret() -> None:
    key = security.derive_signing_key(SECRET)

    assert len(key) == security.SIGNING_KEY_LENGTH
    assert key != SECRET
    assert key == security.derive_signing_key(SECRET)


def test_signature_verifies_and_detects_tampering() -> None:
    body = b'{"type":"m:T","state":{}}'
    signature = security.sign_payload(body, SECRET)

    assert security.verify_signature(body, signature, SECRET)
    assert not security.verify_signature(body + b" ", signature, SECRET)
    assert not security.verify_signature(body, signature, SECRET + b"x")


def test_missing_or_garbage_signature_rejected() -> None:
    body = b"payload"

    assert not security.verify_signature(body, None, SECRET)
    assert not security.verify_signature(body, "", SECRET)
    assert not security.verify_signature(body, "zzé", SECRET)
