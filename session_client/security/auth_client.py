"""
Auth Client - Initial credential issuance and logout

Module: security.auth_client
Date: 2026-10-18
Version: 0.1.0-alpha

CHANGELOG:
[2026-10-18 v0.1.0-alpha] Initial implementation
  - Email/password login
  - Registration
  - Phone OTP login (send + verify)
  - Logout with best-effort server-side revocation
  - Backend health check

ARCHITECTURE:
AuthClient sends unauthenticated requests through RequestPipeline
(authenticate=False: no bearer header, no refresh path) and writes the
returned pair straight into the CredentialStore. First issuance is not
a refresh. Every change to the stored pair is followed by a publish on
the SessionEventBus so SessionGate re-evaluates.

Logout is the one authenticated call: the revocation POST carries the
bearer header and goes through the normal 401 recovery.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from ..core.constants import ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY
from ..events.session_events import SessionEventBus
from ..persistence.credential_store import CredentialStore
from ..transport.request_pipeline import PipelineResponse, RequestPipeline


class AuthenticationError(Exception):
    """Login, registration or OTP verification failed"""

    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status


class AuthClient:
    """Login/registration/logout flows for the session."""

    def __init__(
        self,
        pipeline: RequestPipeline,
        store: CredentialStore,
        session_events: Optional[SessionEventBus] = None,
    ):
        self.logger = logging.getLogger("security.auth_client")
        self.pipeline = pipeline
        self.store = store
        self.session_events = session_events
        self.config = pipeline.config

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """
        Email/password login

        Returns:
            Response body (accessToken, refreshToken, user, ...)

        Raises:
            AuthenticationError: If the backend rejects the credentials
        """
        if not email or not password:
            raise ValueError("email and password required")

        payload = await self._issue(self.config.login_path, {"email": email, "password": password})
        self.logger.info(f"Logged in as {email}")
        return payload

    async def register(self, **fields: Any) -> Dict[str, Any]:
        """
        Create an account and start a session

        Args:
            **fields: Registration form (email, password, name, ...)

        Raises:
            AuthenticationError: If registration is refused
        """
        payload = await self._issue(self.config.register_path, fields)
        self.logger.info(f"Registered {fields.get('email', '<no email>')}")
        return payload

    async def send_otp(self, phone: str) -> Dict[str, Any]:
        """
        Request a one-time code by SMS

        Raises:
            AuthenticationError: If the backend refuses
        """
        response = await self.pipeline.post(
            self.config.send_otp_path, json={"phone": phone}, authenticate=False
        )
        return self._body_or_raise(response)

    async def verify_otp(self, phone: str, otp: str) -> Dict[str, Any]:
        """
        Exchange a one-time code for a session

        Raises:
            AuthenticationError: If the code is rejected
        """
        return await self._issue(self.config.verify_otp_path, {"phone": phone, "otp": otp})

    async def logout(self) -> None:
        """
        Revoke the refresh token server-side, drop both credentials, notify

        Revocation is best effort: a failed call is logged and local
        credentials are cleared regardless.
        """
        refresh_token = await self.store.get(REFRESH_TOKEN_KEY)
        if refresh_token:
            await self._revoke(refresh_token)

        await self.store.delete(ACCESS_TOKEN_KEY)
        await self.store.delete(REFRESH_TOKEN_KEY)
        self.logger.info("Logged out")
        self._notify()

    async def check_connection(self) -> bool:
        """True if the backend health endpoint answers 2xx"""
        try:
            response = await self.pipeline.get(self.config.health_path, authenticate=False)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.warning(f"Health check failed: {e}")
            return False
        return response.ok

    # ------------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------------

    async def _issue(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """POST credentials, store the returned pair, notify"""
        response = await self.pipeline.post(path, json=body, authenticate=False)
        payload = self._body_or_raise(response)

        access_token = payload.get(ACCESS_TOKEN_KEY)
        if not access_token or not isinstance(access_token, str):
            raise AuthenticationError(response.status, "Response has no accessToken")

        await self.store.set(ACCESS_TOKEN_KEY, access_token)
        refresh_token = payload.get(REFRESH_TOKEN_KEY)
        if refresh_token and isinstance(refresh_token, str):
            await self.store.set(REFRESH_TOKEN_KEY, refresh_token)
        else:
            await self.store.delete(REFRESH_TOKEN_KEY)

        self._notify()
        return payload

    async def _revoke(self, refresh_token: str) -> None:
        try:
            response = await self.pipeline.post(
                self.config.logout_path, json={REFRESH_TOKEN_KEY: refresh_token}
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.warning(f"Logout revocation failed: {e}")
            return

        if not response.ok:
            self.logger.warning(f"Logout revocation rejected (status={response.status})")

    def _body_or_raise(self, response: PipelineResponse) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        if not response.ok:
            message = payload.get("message") or payload.get("error") or f"HTTP {response.status}"
            self.logger.warning(f"{response.method} {response.url} rejected: {message}")
            raise AuthenticationError(response.status, str(message))
        return payload

    def _notify(self) -> None:
        if self.session_events is not None:
            self.session_events.publish()
