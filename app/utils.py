"""
Utility functions for the SMS dashboard API.
"""

import hmac
import hashlib
import logging

logger = logging.getLogger(__name__)


def compute_hmac_signature(payload: str, secret: str) -> str:
    """
    Compute a hex HMAC-SHA256 signature of payload.

    Args:
        payload: Text to sign
        secret: SESSION_SECRET

    Returns:
        Hex-encoded signature
    """
    return hmac.new(
        secret.encode("utf-8"),
        payload.encode("utf-8"),
        hashlib.sha256
    ).hexdigest()


def verify_hmac_signature(payload: str, signature: str, secret: str) -> bool:
    """
    Verify HMAC-SHA256 signature.

    Args:
        payload: Signed text
        signature: Hex-encoded signature to check
        secret: SESSION_SECRET

    Returns:
        True if signature is valid, False otherwise
    """
    logger.debug(f"Verifying HMAC signature: {signature[:8]}...")

    if not secret:
        logger.warning("HMAC verification attempted without a secret")
        return False

    expected_signature = compute_hmac_signature(payload, secret)

    # Use constant-time comparison to prevent timing attacks
    is_valid = hmac.compare_digest(expected_signature, signature)
    logger.debug(f"HMAC signature verification: {'valid' if is_valid else 'invalid'}")

    return is_valid
