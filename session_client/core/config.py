"""
Session Client Configuration

Module: core.config
Date: 2026-10-18
Version: 0.1.0-alpha

CHANGELOG:
[2026-10-18 v0.1.0-alpha] Initial implementation
  - SessionConfig dataclass
  - Environment overrides

ARCHITECTURE:
SessionConfig is shared by RequestPipeline, AuthClient and the CLI.
Paths are relative to base_url so a single backend switch moves every
endpoint.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .constants import (
    DEFAULT_BASE_URL,
    DEFAULT_CREDENTIAL_FILE,
    DEFAULT_REQUEST_TIMEOUT,
    ENV_BASE_URL,
    ENV_CREDENTIAL_FILE,
    ENV_REQUEST_TIMEOUT,
    HEALTH_PATH,
    LOGIN_PATH,
    LOGOUT_PATH,
    REFRESH_PATH,
    REGISTER_PATH,
    SEND_OTP_PATH,
    VERIFY_OTP_PATH,
)


@dataclass
class SessionConfig:
    """Session client configuration"""
    base_url: str = DEFAULT_BASE_URL
    refresh_path: str = REFRESH_PATH
    login_path: str = LOGIN_PATH
    register_path: str = REGISTER_PATH
    send_otp_path: str = SEND_OTP_PATH
    verify_otp_path: str = VERIFY_OTP_PATH
    logout_path: str = LOGOUT_PATH
    health_path: str = HEALTH_PATH
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    credential_file: str = DEFAULT_CREDENTIAL_FILE

    def __post_init__(self):
        """Normalize base URL and validate timeout"""
        self.base_url = self.base_url.rstrip("/")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")

    def url_for(self, path: str) -> str:
        """
        Build absolute URL for a path

        Absolute URLs are returned unchanged.

        Args:
            path: Endpoint path (e.g. "/auth/login") or absolute URL

        Returns:
            Absolute URL
        """
        if path.startswith("http://") or path.startswith("https://"):
            return path
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.base_url}{path}"

    @property
    def refresh_url(self) -> str:
        return self.url_for(self.refresh_path)

    @property
    def credential_path(self) -> Path:
        return Path(self.credential_file).expanduser()

    @classmethod
    def from_env(cls, **overrides) -> "SessionConfig":
        """
        Build configuration from environment variables

        Args:
            **overrides: Explicit values, take precedence over environment

        Returns:
            SessionConfig

        Raises:
            ValueError: If SESSION_CLIENT_TIMEOUT is not a number
        """
        values = {}

        base_url = os.getenv(ENV_BASE_URL)
        if base_url:
            values["base_url"] = base_url

        credential_file = os.getenv(ENV_CREDENTIAL_FILE)
        if credential_file:
            values["credential_file"] = credential_file

        timeout = os.getenv(ENV_REQUEST_TIMEOUT)
        if timeout:
            try:
                values["request_timeout"] = float(timeout)
            except ValueError:
                raise ValueError(f"{ENV_REQUEST_TIMEOUT} must be a number, got {timeout!r}")

        values.update(overrides)
        config = cls(**values)
        logging.getLogger("core.config").debug(
            f"Config loaded (base_url={config.base_url}, timeout={config.request_timeout}s)"
        )
        return config
