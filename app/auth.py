"""
Session identity and password hashing.

Session tokens are stateless and signed with SESSION_SECRET:

    <user_id>.<expires_unix>.<hex HMAC-SHA256 of "<user_id>.<expires_unix>">

Resolving a token never touches the database.
"""

import hashlib
import hmac
import logging
import secrets
import time
from typing import Annotated, Optional

from fastapi import Header

from app.config import settings
from app.utils import compute_hmac_signature, verify_hmac_signature

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 310_000


def issue_session_token(user_id: str, ttl_seconds: Optional[int] = None) -> str:
    """Mint a bearer token identifying user_id until it expires."""
    ttl = settings.SESSION_TTL_SECONDS if ttl_seconds is None else ttl_seconds
    expires_at = int(time.time()) + ttl
    payload = f"{user_id}.{expires_at}"
    return f"{payload}.{compute_hmac_signature(payload, settings.SESSION_SECRET)}"


def verify_session_token(token: str) -> Optional[str]:
    """
    Return the user id carried by a valid token, or None if the token is
    malformed, badly signed, or expired.
    """
    parts = token.rsplit(".", 2)
    if len(parts) != 3:
        logger.debug("Malformed session token")
        return None

    user_id, expires_raw, signature = parts
    if not user_id or not expires_raw.isdigit():
        logger.debug("Malformed session token")
        return None

    if not verify_hmac_signature(f"{user_id}.{expires_raw}", signature, settings.SESSION_SECRET):
        logger.warning("Session token signature mismatch")
        return None

    if int(expires_raw) <= int(time.time()):
        logger.info(f"Expired session token for user {user_id}")
        return None

    return user_id


def get_session_user_id(
    authorization: Annotated[str | None, Header()] = None,
) -> Optional[str]:
    """
    FastAPI dependency: the authenticated user id from
    `Authorization: Bearer <token>`, or None when there is no valid session.

    Rejection is left to the caller so that input validation can run first.
    """
    if not authorization:
        return None

    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        logger.debug("Unsupported Authorization header")
        return None

    return verify_session_token(token.strip())


# =============================================================================
# Passwords
# =============================================================================

def hash_password(password: str, iterations: int = PBKDF2_ITERATIONS) -> str:
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return f"pbkdf2_sha256${iterations}${salt}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    try:
        algorithm, iterations_raw, salt, expected = password_hash.split("$")
        iterations = int(iterations_raw)
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256" or iterations < 1:
        return False

    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return hmac.compare_digest(digest.hex(), expected)
