"""
Token Inspector - Bearer token expiry introspection

Module: security.token_inspector
Date: 2026-10-18
Version: 0.1.0-alpha

CHANGELOG:
[2026-10-18 v0.1.0-alpha] Initial implementation
  - Unverified claim decoding (PyJWT)
  - exp claim check in whole seconds since epoch
  - Fail-closed on malformed tokens

ARCHITECTURE:
Pure functions, no I/O:
  - decode_claims(): claim set or MalformedTokenError
  - expires_at(): exp as UTC datetime (diagnostics)
  - is_expired(): bool, True for anything unparsable

SECURITY NOTES:
- Signature is NOT verified here, the issuing server does that
- A token that cannot be decoded is always treated as expired
- Missing exp means non-expiring
"""

import logging
import math
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import jwt


logger = logging.getLogger("security.token_inspector")

# Claims are only read, never trusted
_UNVERIFIED_OPTIONS = {
    "verify_signature": False,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_aud": False,
    "verify_iss": False,
    "verify_sub": False,
    "verify_jti": False,
}


class MalformedTokenError(Exception):
    """Token claims could not be decoded"""
    pass


def decode_claims(token: str) -> Dict[str, Any]:
    """
    Decode token claims WITHOUT signature verification

    Args:
        token: JWT string

    Returns:
        Claim dictionary

    Raises:
        MalformedTokenError: If token is not a decodable JWT
    """
    if not token or not isinstance(token, str):
        raise MalformedTokenError("Token must be non-empty string")

    try:
        payload = jwt.decode(token, options=dict(_UNVERIFIED_OPTIONS))
    except jwt.InvalidTokenError as e:
        raise MalformedTokenError(f"Cannot decode token: {e}")

    if not isinstance(payload, dict):
        raise MalformedTokenError("Token payload is not a JSON object")
    return payload


def _exp_claim(claims: Dict[str, Any]) -> Optional[float]:
    """exp as number, None if absent"""
    exp = claims.get("exp")
    if exp is None:
        return None
    # bool is an int subclass, reject it explicitly
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        raise MalformedTokenError(f"Non-numeric exp claim: {exp!r}")
    # NaN compares False against everything
    if not math.isfinite(exp):
        raise MalformedTokenError(f"Non-finite exp claim: {exp!r}")
    return exp


def expires_at(token: str) -> Optional[datetime]:
    """
    Expiration time of a token

    Returns:
        UTC datetime, or None if the token has no exp claim

    Raises:
        MalformedTokenError: If token or exp claim is malformed
    """
    exp = _exp_claim(decode_claims(token))
    if exp is None:
        return None
    try:
        return datetime.fromtimestamp(exp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise MalformedTokenError(f"Invalid exp timestamp: {e}")


def is_expired(token: str, now: Optional[float] = None) -> bool:
    """
    Check whether a bearer token is expired

    Args:
        token: JWT string
        now: Current time in seconds since epoch (defaults to time.time())

    Returns:
        True if expired or unparsable, False if valid or non-expiring
    """
    try:
        exp = _exp_claim(decode_claims(token))
    except MalformedTokenError as e:
        logger.debug(f"Treating malformed token as expired: {e}")
        return True

    if exp is None:
        return False

    current = int(time.time()) if now is None else now
    return exp < current
