"""
Slack request signature verification.

Slack signs each request as `v0=` + hex(HMAC-SHA256(secret,
"v0:{timestamp}:{raw body}")). Requests older than five minutes are
rejected to stop replays.
"""

import hashlib
import hmac
import logging
import time

from bella.config.settings import SlackAppConfig, get_settings

logger = logging.getLogger(__name__)

REPLAY_WINDOW_SECONDS = 300
SIGNATURE_VERSION = "v0"


def compute_signature(signing_secret: str, timestamp: str, body: bytes | str) -> str:
    """Signature Slack would send for this timestamp and body."""
    raw = body.decode("utf-8") if isinstance(body, bytes) else body
    base = f"{SIGNATURE_VERSION}:{timestamp}:{raw}".encode()
    digest = hmac.new(signing_secret.encode(), base, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_VERSION}={digest}"


def verify_slack_signature(
    signing_secret: str,
    signature: str | None,
    timestamp: str | None,
    body: bytes | str,
    now: float | None = None,
) -> bool:
    """
    Check a request signature in constant time.

    Returns:
        False for missing headers, stale timestamps, or a mismatch
    """
    if not signature or not timestamp:
        return False
    try:
        sent_at = int(timestamp)
    except ValueError:
        return False
    current = time.time() if now is None else now
    if abs(current - sent_at) > REPLAY_WINDOW_SECONDS:
        logger.warning("Slack request timestamp outside replay window")
        return False
    expected = compute_signature(signing_secret, timestamp, body)
    return hmac.compare_digest(expected, signature)


def validate_slack_request(
    app: SlackAppConfig,
    signature: str | None,
    timestamp: str | None,
    body: bytes | str,
) -> bool:
    """
    Validate an incoming Slack webhook for one app.

    Without a signing secret, production rejects everything and development
    lets requests through with a warning.
    """
    if not app.signing_secret:
        if get_settings().is_production:
            logger.error("Slack signing secret not set in production, rejecting webhook request")
            return False
        logger.warning("Slack signing secret not set, signature validation skipped (dev mode)")
        return True

    if not verify_slack_signature(app.signing_secret, signature, timestamp, body):
        logger.warning("Slack request failed signature validation")
        return False
    return True


__all__ = [
    "REPLAY_WINDOW_SECONDS",
    "compute_signature",
    "verify_slack_signature",
    "validate_slack_request",
]
