import enum
import hashlib
import hmac
import json
import logging

import httpx

SIGNATURE_HEADER = "X-Webhook-Signature"
SIGNATURE_PREFIX = "sha256="


class SignatureVerdict(enum.Enum):
    VERIFIED = "verified"
    MISSING = "missing"
    MISMATCH = "mismatch"

    @property
    def accepted(self) -> bool:
        return self is SignatureVerdict.VERIFIED


def _as_bytes(value) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


def sign(secret: str, body) -> str:
    """Return the header value for body: 'sha256=' + hex HMAC-SHA256."""
    digest = hmac.new(_as_bytes(secret), _as_bytes(body), hashlib.sha256).hexdigest()
    return SIGNATURE_PREFIX + digest


def verify_signature(secret: str, body, header: str | None) -> SignatureVerdict:
    """Check header against the exact body bytes. Pure and deterministic."""
    if not header:
        return SignatureVerdict.MISSING
    if hmac.compare_digest(_as_bytes(header.strip()), _as_bytes(sign(secret, body))):
        return SignatureVerdict.VERIFIED
    return SignatureVerdict.MISMATCH


def encode_payload(payload: dict) -> bytes:
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


def post_signed(url: str, secret: str, payload: dict, timeout: float = 10.0,
                logger: logging.Logger | None = None) -> httpx.Response:
    """POST payload as JSON with its signature header; raises on HTTP errors."""
    body = encode_payload(payload)
    headers = {"Content-Type": "application/json", SIGNATURE_HEADER: sign(secret, body)}
    resp = httpx.post(url, content=body, headers=headers, timeout=timeout)
    if logger:
        logger.info("Webhook %s responded %s", url, resp.status_code)
    resp.raise_for_status()
    return resp
