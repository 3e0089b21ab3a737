"""
Request signature verification for chat callbacks.

Implements the Slack signing scheme: an HMAC-SHA256 over
``v0:{timestamp}:{raw body}`` keyed by the app's signing secret, plus a
replay window on the request timestamp.
"""

import hashlib
import hmac
import time
from collections.abc import Mapping
from enum import Enum

import structlog

from dlp_remediator.exceptions import AuthenticationError

logger = structlog.get_logger(__name__)

SIGNATURE_HEADER = "X-Slack-Signature"
TIMESTAMP_HEADER = "X-Slack-Request-Timestamp"
SIGNATURE_VERSION = "v0"
DEFAULT_TOLERANCE_SECONDS = 300


class VerificationResult(str, Enum):
    """Outcome of a signature check."""

    OK = "OK"
    SIGNATURE_INVALID = "SIGNATURE_INVALID"
    STALE = "STALE"


def _header(headers: Mapping[str, str], name: str) -> str | None:
    # API gateways and ASGI servers disagree on header casing
    if name in headers:
        return headers[name]
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


class SignatureVerifier:
    """
    Validates authenticity and freshness of inbound approval callbacks.

    Only staleness is checked; timestamps in the future are accepted.
    """

    def __init__(
        self,
        signing_secret: str,
        tolerance_seconds: int = DEFAULT_TOLERANCE_SECONDS,
    ) -> None:
        self._secret = signing_secret.encode("utf-8")
        self._tolerance = tolerance_seconds
        self._logger = logger.bind(component="signature_verifier")

    def sign(self, timestamp: int | str, raw_body: str, version: str = SIGNATURE_VERSION) -> str:
        """Compute the ``{version}={hex digest}`` signature for a body."""
        base = f"{version}:{timestamp}:{raw_body}".encode("utf-8")
        digest = hmac.new(self._secret, base, hashlib.sha256).hexdigest()
        return f"{version}={digest}"

    def verify(
        self,
        headers: Mapping[str, str],
        raw_body: str,
        now: float | None = None,
    ) -> VerificationResult:
        """
        Verify a callback's signature headers against its raw body.

        Args:
            headers: Request headers
            raw_body: The body exactly as received, before any decoding
            now: Receipt time in epoch seconds (defaults to the current time)

        Returns:
            VerificationResult
        """
        signature = _header(headers, SIGNATURE_HEADER)
        raw_ts = _header(headers, TIMESTAMP_HEADER)

        if not signature or not raw_ts:
            self._logger.warning("signature_headers_missing")
            return VerificationResult.SIGNATURE_INVALID

        try:
            timestamp = int(raw_ts)
        except ValueError:
            self._logger.warning("signature_timestamp_malformed")
            return VerificationResult.SIGNATURE_INVALID

        received_at = int(now if now is not None else time.time())
        if timestamp < received_at - self._tolerance:
            self._logger.warning(
                "signature_request_stale",
                age_seconds=received_at - timestamp,
            )
            return VerificationResult.STALE

        version, sep, supplied = signature.partition("=")
        if not sep or not supplied:
            self._logger.warning("signature_malformed")
            return VerificationResult.SIGNATURE_INVALID

        expected = self.sign(raw_ts, raw_body, version=version)
        if not hmac.compare_digest(signature.encode("utf-8"), expected.encode("utf-8")):
            self._logger.warning("signature_mismatch")
            return VerificationResult.SIGNATURE_INVALID

        return VerificationResult.OK

    def require_valid(
        self,
        headers: Mapping[str, str],
        raw_body: str,
        now: float | None = None,
    ) -> None:
        """Like :meth:`verify` but raises ``AuthenticationError`` on failure."""
        result = self.verify(headers, raw_body, now=now)
        if result != VerificationResult.OK:
            raise AuthenticationError(f"Request signing verification failed: {result.value}")
