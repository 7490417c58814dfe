import hashlib
import hmac
import json

import httpx
import pytest

from webhook_signature import SIGNATURE_HEADER, SignatureVerdict, encode_payload, post_signed, sign, verify_signature

SECRET = "s3cret"
BODY = b'{"testResults":{"summary":"5 passed"},"buildId":"42","runId":"7"}'


def test_sign_matches_hmac_sha256_hex():
    expected = "sha256=" + hmac.new(SECRET.encode(), BODY, hashlib.sha256).hexdigest()
    assert sign(SECRET, BODY) == expected
    assert sign(SECRET, BODY.decode()) == expected


def test_valid_signature_is_verified():
    assert verify_signature(SECRET, BODY, sign(SECRET, BODY)) is SignatureVerdict.VERIFIED
    assert verify_signature(SECRET, BODY, sign(SECRET, BODY)).accepted


@pytest.mark.parametrize("header", [
    "sha256=deadbeef",
    sign("other-secret", BODY),
    sign(SECRET, BODY)[len("sha256="):],  # digest without prefix
    sign(SECRET, BODY).upper(),
])
def test_other_headers_are_rejected(header):
    assert verify_signature(SECRET, BODY, header) is SignatureVerdict.MISMATCH


@pytest.mark.parametrize("header", [None, ""])
def test_missing_header_is_rejected(header):
    verdict = verify_signature(SECRET, BODY, header)
    assert verdict is SignatureVerdict.MISSING
    assert not verdict.accepted


def test_reused_signature_on_different_body_is_rejected():
    signature = sign(SECRET, BODY)
    tampered = BODY.replace(b"5 passed", b"6 passed")
    assert verify_signature(SECRET, tampered, signature) is SignatureVerdict.MISMATCH


def test_verification_is_deterministic():
    signature = sign(SECRET, BODY)
    assert {verify_signature(SECRET, BODY, signature) for _ in range(3)} == {SignatureVerdict.VERIFIED}


def test_post_signed_sends_body_with_matching_header(monkeypatch):
    sent = {}

    def fake_post(url, content=None, headers=None, timeout=None):
        sent.update(url=url, content=content, headers=headers)
        return httpx.Response(200, json={"status": "success"}, request=httpx.Request("POST", url))

    monkeypatch.setattr(httpx, "post", fake_post)
    payload = {"testResults": {"summary": "1 passed"}, "buildId": "b", "runId": "r"}

    resp = post_signed("http://ci.local/webhook/test-results", SECRET, payload)

    assert resp.status_code == 200
    assert sent["content"] == encode_payload(payload)
    assert json.loads(sent["content"]) == payload
    assert verify_signature(SECRET, sent["content"], sent["headers"][SIGNATURE_HEADER]).accepted


def test_post_signed_raises_on_rejection(monkeypatch):
    def fake_post(url, content=None, headers=None, timeout=None):
        return httpx.Response(401, json={"error": "Invalid signature"}, request=httpx.Request("POST", url))

    monkeypatch.setattr(httpx, "post", fake_post)

    with pytest.raises(httpx.HTTPStatusError):
        post_signed("http://ci.local/webhook/test-results", "wrong", {"x": 1})
