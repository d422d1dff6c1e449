"""Billing-processor webhook signature verification.

The processor signs each delivery with a header of the form::

    paddle-signature: ts=1671552777;h1=eb4d0dc8853be92b7f063b9f3ba5233eb920a09459b6e6b2c26705b4364db151

where ``h1`` is ``HMAC-SHA256(secret, "<ts>:<raw body>")`` in hex.  During
secret rotation the header may carry more than one ``h1`` entry; any of
them matching is sufficient.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import NamedTuple

SIGNATURE_HEADER = "paddle-signature"


class ParsedSignature(NamedTuple):
    timestamp: str
    digests: tuple[str, ...]


def parse_signature_header(header: str | None) -> ParsedSignature | None:
    """Split a signature header into its timestamp and ``h1`` digests.

    Returns ``None`` when the header is missing or lacks either part.
    """
    if not header:
        return None
    timestamp = ""
    digests: list[str] = []
    for part in header.split(";"):
        key, sep, value = part.strip().partition("=")
        if not sep:
            continue
        if key == "ts":
            timestamp = value
        elif key == "h1" and value:
            digests.append(value)
    if not timestamp or not digests:
        return None
    return ParsedSignature(timestamp=timestamp, digests=tuple(digests))


def compute_signature(secret: str, timestamp: str, body: bytes) -> str:
    """Return the hex HMAC-SHA256 of ``"<timestamp>:<body>"``."""
    signed_payload = timestamp.encode("utf-8") + b":" + body
    return hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, header: str | None, secret: str) -> bool:
    """Verify *header* against the raw request *body*.

    Parameters
    ----------
    body:
        Raw request body bytes, exactly as received.
    header:
        The ``paddle-signature`` header value.
    secret:
        The webhook signing secret.

    Returns
    -------
    bool
        ``False`` on a missing secret, a malformed header, or a digest
        mismatch.  Digests are compared in constant time.
    """
    if not secret:
        return False
    parsed = parse_signature_header(header)
    if parsed is None:
        return False
    expected = compute_signature(secret, parsed.timestamp, body).encode("ascii")
    # Header values may hold any latin-1 text; compare_digest only takes ASCII str.
    return any(hmac.compare_digest(expected, digest.encode("utf-8", "surrogateescape")) for digest in parsed.digests)
