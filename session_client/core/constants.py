"""
Constants for Session Client

Module: core.constants
Date: 2026-10-18
Version: 0.1.0-alpha

CHANGELOG:
[2026-10-18 v0.1.0-alpha] Initial constants definition
  - Credential key names
  - Remote endpoint paths
  - Request defaults
  - Environment variable names

SECURITY NOTES:
- Token values are never logged, only a short prefix
- Credential file is written with 0600 permissions
"""

from typing import Final

# ============================================================================
# Credential names (one value per name in the store)
# ============================================================================

ACCESS_TOKEN_KEY: Final[str] = "accessToken"
REFRESH_TOKEN_KEY: Final[str] = "refreshToken"

# ============================================================================
# HTTP
# ============================================================================

AUTHORIZATION_HEADER: Final[str] = "Authorization"
BEARER_PREFIX: Final[str] = "Bearer"

HTTP_UNAUTHORIZED: Final[int] = 401

# Default timeout (in seconds)
DEFAULT_REQUEST_TIMEOUT: Final[float] = 10.0

# ============================================================================
# Remote endpoints (relative to base URL)
# ============================================================================

DEFAULT_BASE_URL: Final[str] = "http://127.0.0.1:5000/api/v1"

REFRESH_PATH: Final[str] = "/auth/refresh-token"
LOGIN_PATH: Final[str] = "/auth/login"
REGISTER_PATH: Final[str] = "/auth/register"
SEND_OTP_PATH: Final[str] = "/auth/send-otp"
VERIFY_OTP_PATH: Final[str] = "/auth/verify-otp"
LOGOUT_PATH: Final[str] = "/auth/logout"
HEALTH_PATH: Final[str] = "/health"

# ============================================================================
# Persistence
# ============================================================================

DEFAULT_CREDENTIAL_FILE: Final[str] = "~/.session_client/credentials.json"

# ============================================================================
# Environment variables
# ============================================================================

ENV_BASE_URL: Final[str] = "SESSION_CLIENT_BASE_URL"
ENV_CREDENTIAL_FILE: Final[str] = "SESSION_CLIENT_CREDENTIAL_FILE"
ENV_REQUEST_TIMEOUT: Final[str] = "SESSION_CLIENT_TIMEOUT"


def token_preview(token: str) -> str:
    """Short, log-safe prefix of a token"""
    if not token:
        return "<none>"
    return f"{token[:8]}..."
