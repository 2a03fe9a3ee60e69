"""
Security module - Token introspection and credential issuance

Provides:
- is_expired / decode_claims / expires_at: unverified JWT inspection
- AuthClient: login, registration, OTP, logout
"""

from .token_inspector import (
    MalformedTokenError,
    decode_claims,
    expires_at,
    is_expired,
)
from .auth_client import AuthClient, AuthenticationError

__all__ = [
    "MalformedTokenError",
    "decode_claims",
    "expires_at",
    "is_expired",
    "AuthClient",
    "AuthenticationError",
]
