"""Tests for HMAC-SHA256 webhook signatures."""

import hashlib
import hmac

import pytest

from scribe.events.signing import SIGNATURE_HEADER, sign, verify, verify_request

SECRET = "whsec_test_secret"
BODY = b'{"data":{"summary_id":"s1"},"event_type":"summary.completed"}'


def test_sign_matches_hmac_sha256():
    expected = hmac.new(SECRET.encode("utf-8"), BODY, hashlib.sha256).hexdigest()
    assert sign(BODY, SECRET) == expected


def test_verify_accepts_own_signature():
    assert verify(BODY, sign(BODY, SECRET), SECRET)


def test_verify_rejects_wrong_secret():
    assert not verify(BODY, sign(BODY, SECRET), "other-secret")


def test_verify_rejects_any_single_bit_flip_in_payload():
    signature = sign(BODY, SECRET)
    for index in range(len(BODY)):
        for bit in range(8):
            tampered = bytearray(BODY)
            tampered[index] ^= 1 << bit
            assert not verify(bytes(tampered), signature, SECRET), (index, bit)


def test_verify_rejects_any_single_bit_flip_in_signature():
    signature = sign(BODY, SECRET)
    raw = signature.encode("ascii")
    for index in range(len(raw)):
        for bit in range(7):
            tampered = bytearray(raw)
            tampered[index] ^= 1 << bit
            try:
                candidate = tampered.decode("ascii")
            except UnicodeDecodeError:
                continue
            assert not verify(BODY, candidate, SECRET)


@pytest.mark.parametrize("signature", ["", "not-hex", "abc", "é" * 64])
def test_verify_rejects_malformed_signatures(signature):
    assert verify(BODY, signature, SECRET) is False


def test_verify_request_accepts_prefix_and_any_header_case():
    signature = sign(BODY, SECRET)
    assert verify_request(BODY, {SIGNATURE_HEADER: signature}, SECRET)
    assert verify_request(BODY, {"x-webhook-signature": f"sha256={signature}"}, SECRET)


def test_verify_request_without_header_fails():
    assert not verify_request(BODY, {"Content-Type": "application/json"}, SECRET)
