"""HMAC-SHA256 signature verification for inbound webhooks.

The sender signs ``"<timestamp>." + raw_body`` with the shared endpoint secret
and sends the result in a header shaped like::

    t=1700000000,v1=5257a869...,v1=8b1a9953...

Several ``v1`` values may be present while the sender rotates secrets.
Other schemes (``v0`` and anything unknown) are ignored.

Verification must run on the exact bytes received. Re-serializing a parsed
body changes whitespace, key order, or number formatting and invalidates the
signature, so ``construct_event`` verifies first and decodes second.
"""

from __future__ import annotations

import hashlib
import hmac
import re
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import timedelta

from pydantic import ValidationError

from pinhook.exceptions import (
    InvalidPayloadError,
    MalformedHeaderError,
    SignatureMismatchError,
    TimestampOutOfToleranceError,
)
from pinhook.logging import get_logger
from pinhook.models import Event

logger = get_logger(__name__)

SIGNATURE_SCHEME = "v1"
TIMESTAMP_KEY = "t"
DEFAULT_TOLERANCE = timedelta(minutes=5)

_ITEM_SEPARATOR = re.compile(r"[,;]")
# Bounded so oversized values fail parsing instead of int() conversion
_INTEGER = re.compile(r"-?[0-9]{1,19}")


@dataclass(frozen=True)
class SignatureHeader:
    """Parsed signature header.

    Attributes:
        timestamp: Unix seconds at which the payload was signed.
        signatures: Candidate hex signatures for the expected scheme.
    """

    timestamp: int
    signatures: tuple[str, ...]


def _as_bytes(secret: str | bytes) -> bytes:
    if isinstance(secret, bytes):
        return secret
    return secret.encode("utf-8")


def parse_signature_header(
    header_value: str | None,
    scheme: str = SIGNATURE_SCHEME,
) -> SignatureHeader:
    """Parse a ``t=...,v1=...`` header.

    Args:
        header_value: Raw header value. ``,`` and ``;`` both separate items.
        scheme: Signature scheme to collect. Other schemes are ignored.

    Returns:
        SignatureHeader with the timestamp and candidate signatures.

    Raises:
        MalformedHeaderError: If the header is empty, has no valid timestamp,
            carries conflicting timestamps, or has no signature for ``scheme``.
    """
    if not header_value or not header_value.strip():
        raise MalformedHeaderError("Signature header is missing")

    timestamps: set[str] = set()
    signatures: list[str] = []

    for item in _ITEM_SEPARATOR.split(header_value):
        key, sep, value = item.strip().partition("=")
        if not sep:
            continue
        key = key.strip()
        value = value.strip()
        if key == TIMESTAMP_KEY:
            timestamps.add(value)
        elif key == scheme and value:
            signatures.append(value)

    if not timestamps:
        raise MalformedHeaderError("Unable to extract timestamp from header")
    if len(timestamps) > 1:
        raise MalformedHeaderError("Header contains conflicting timestamps")

    raw_timestamp = timestamps.pop()
    if not _INTEGER.fullmatch(raw_timestamp):
        raise MalformedHeaderError("Timestamp is not a valid integer")

    if not signatures:
        raise MalformedHeaderError(f"No signatures found with expected scheme {scheme}")

    return SignatureHeader(timestamp=int(raw_timestamp), signatures=tuple(signatures))


def compute_signature(timestamp: int, raw_body: bytes, secret: str | bytes) -> str:
    """Compute the hex HMAC-SHA256 signature for a payload.

    Args:
        timestamp: Unix seconds included in the signed payload.
        raw_body: Exact request body bytes.
        secret: Shared signing secret.

    Returns:
        Lowercase hex digest.
    """
    signed_payload = str(timestamp).encode("ascii") + b"." + raw_body
    return hmac.new(
        key=_as_bytes(secret),
        msg=signed_payload,
        digestmod=hashlib.sha256,
    ).hexdigest()


def generate_signature_header(
    raw_body: bytes,
    secret: str | bytes,
    timestamp: int | None = None,
    scheme: str = SIGNATURE_SCHEME,
) -> str:
    """Build a signature header value for ``raw_body``.

    Useful for signing test fixtures and for replaying captured events
    against a local endpoint.

    Args:
        raw_body: Body bytes to sign.
        secret: Shared signing secret.
        timestamp: Unix seconds. Defaults to now.
        scheme: Signature scheme key.

    Returns:
        Header value in the form ``t=<timestamp>,<scheme>=<hex>``.
    """
    if timestamp is None:
        timestamp = int(time.time())
    signature = compute_signature(timestamp, raw_body, secret)
    return f"{TIMESTAMP_KEY}={timestamp},{scheme}={signature}"


def verify_signature(
    raw_body: bytes,
    header_value: str | None,
    secrets: Iterable[str | bytes],
    tolerance: timedelta = DEFAULT_TOLERANCE,
    now: float | None = None,
) -> SignatureHeader:
    """Verify a signature header against the raw body.

    Every candidate signature is compared with every secret using
    ``hmac.compare_digest``. The timestamp is checked after the signature,
    so a correctly signed but stale request still fails.

    Args:
        raw_body: Exact request body bytes.
        header_value: Signature header value.
        secrets: Signing secrets, current first.
        tolerance: Maximum allowed distance between timestamp and ``now``.
        now: Current unix time. Defaults to ``time.time()``.

    Returns:
        The parsed SignatureHeader.

    Raises:
        MalformedHeaderError: If the header cannot be parsed.
        SignatureMismatchError: If no candidate matches any secret.
        TimestampOutOfToleranceError: If the timestamp is outside tolerance.
    """
    header = parse_signature_header(header_value)

    candidates = [candidate.encode("utf-8") for candidate in header.signatures]
    matched = False
    for secret in secrets:
        expected = compute_signature(header.timestamp, raw_body, secret).encode("ascii")
        for candidate in candidates:
            # Compare every pair so timing does not reveal which one matched
            if hmac.compare_digest(expected, candidate):
                matched = True
    if not matched:
        raise SignatureMismatchError()

    if now is None:
        now = time.time()
    tolerance_seconds = tolerance.total_seconds()
    if abs(now - header.timestamp) > tolerance_seconds:
        raise TimestampOutOfToleranceError(header.timestamp, tolerance_seconds)

    return header


class SignatureVerifier:
    """Verifies inbound webhook signatures against configured secrets.

    Holds the secrets, tolerance, and clock so request code only passes the
    body and header. Instances are immutable and safe to share across
    concurrent requests.

    Example:
        ```python
        verifier = SignatureVerifier([b"whsec_current", b"whsec_previous"])
        header = verifier.verify(raw_body, request.headers["Stripe-Signature"])
        ```
    """

    def __init__(
        self,
        secrets: Iterable[str | bytes],
        tolerance: timedelta = DEFAULT_TOLERANCE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the verifier.

        Args:
            secrets: Signing secrets in priority order. May be empty, in which
                case every request fails with SignatureMismatchError.
            tolerance: Maximum allowed timestamp skew. Must be positive.
            clock: Returns current unix time in seconds.
        """
        if tolerance <= timedelta(0):
            raise ValueError("tolerance must be positive")
        self._secrets: tuple[bytes, ...] = tuple(_as_bytes(s) for s in secrets)
        self._tolerance = tolerance
        self._clock = clock

    def __repr__(self) -> str:
        return (
            f"SignatureVerifier(secrets=<{len(self._secrets)} hidden>, "
            f"tolerance={self._tolerance!r})"
        )

    @property
    def tolerance(self) -> timedelta:
        """Configured timestamp tolerance."""
        return self._tolerance

    @property
    def secret_count(self) -> int:
        """Number of configured secrets."""
        return len(self._secrets)

    def verify(
        self,
        raw_body: bytes,
        header_value: str | None,
        now: float | None = None,
    ) -> SignatureHeader:
        """Verify ``header_value`` against ``raw_body``.

        Args:
            raw_body: Exact request body bytes.
            header_value: Signature header value.
            now: Override for the current time. Uses the clock if None.

        Returns:
            The parsed SignatureHeader.

        Raises:
            MalformedHeaderError: If the header cannot be parsed.
            SignatureMismatchError: If no candidate matches any secret.
            TimestampOutOfToleranceError: If the timestamp is outside tolerance.
        """
        return verify_signature(
            raw_body,
            header_value,
            self._secrets,
            tolerance=self._tolerance,
            now=self._clock() if now is None else now,
        )


def construct_event(
    raw_body: bytes,
    header_value: str | None,
    verifier: SignatureVerifier,
) -> Event:
    """Verify a webhook request and decode it into an Event.

    Args:
        raw_body: Exact request body bytes.
        header_value: Signature header value.
        verifier: Verifier holding secrets and tolerance.

    Returns:
        The decoded Event.

    Raises:
        WebhookVerificationError: If verification fails (see ``verify``).
        InvalidPayloadError: If the verified body is not a valid event.
    """
    verifier.verify(raw_body, header_value)
    try:
        return Event.model_validate_json(raw_body)
    except ValidationError as e:
        logger.debug("Verified body is not a valid event", errors=e.error_count())
        raise InvalidPayloadError(
            f"Body is not a valid event envelope ({e.error_count()} errors)"
        ) from e
