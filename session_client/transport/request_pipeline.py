"""
Request Pipeline - Authenticated HTTP with single refresh-and-retry

Module: transport.request_pipeline
Date: 2026-10-18
Version: 0.1.0-alpha

CHANGELOG:
[2026-10-18 v0.1.0-alpha] Initial implementation
  - Bearer header from CredentialStore on every request
  - One refresh exchange + one resend on 401
  - Shared in-flight refresh latch for concurrent 401s
  - Full credential teardown on refresh failure
  - Optional SessionEventBus notification on teardown

ARCHITECTURE:
Per request:
  1. attach accessToken (if held)
  2. send
  3. non-401 -> returned verbatim
  4. 401 -> refresh exchange (shared), persist new pair, resend once
  5. refresh impossible or failed -> delete both tokens, return original 401

The refresh exchange runs as a single asyncio.Task. Every 401 that
arrives while it runs awaits the same task through asyncio.shield(), so
a caller that gives up never cancels the exchange and the result is
always persisted.

SECURITY NOTES:
- Refresh endpoint is called without the stale Authorization header
- The refresh exchange itself is never retried
- Token values are logged only as short prefixes
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import aiohttp

from ..core.config import SessionConfig
from ..core.constants import (
    ACCESS_TOKEN_KEY,
    AUTHORIZATION_HEADER,
    BEARER_PREFIX,
    HTTP_UNAUTHORIZED,
    REFRESH_TOKEN_KEY,
    token_preview,
)
from ..events.session_events import SessionEventBus
from ..persistence.credential_store import CredentialStore


# ============================================================================
# Errors
# ============================================================================

class RefreshError(Exception):
    """Base refresh exchange error"""
    pass


class RefreshRejectedError(RefreshError):
    """Refresh endpoint answered with a non-success response"""

    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status


class RefreshNetworkError(RefreshError):
    """Transport failure while talking to the refresh endpoint"""
    pass


# ============================================================================
# Types and Data Classes
# ============================================================================

@dataclass
class PipelineResponse:
    """
    Fully-read HTTP response

    Attributes:
        status: HTTP status code
        headers: Response headers (case-insensitive mapping)
        body: Raw response body
        method: Request method
        url: Final request URL
    """
    status: int
    headers: Mapping[str, str]
    body: bytes
    method: str = "GET"
    url: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def text(self, encoding: str = "utf-8") -> str:
        return self.body.decode(encoding, errors="replace")

    def json(self) -> Any:
        """
        Parse body as JSON

        Raises:
            ValueError: If body is not valid JSON
        """
        return json.loads(self.body.decode("utf-8"))


@dataclass
class PendingRequest:
    """
    Outbound call captured for a possible single replay

    headers never contain Authorization, it is attached per attempt.
    """
    method: str
    url: str
    params: Optional[Mapping[str, Any]] = None
    json_body: Any = None
    data: Any = None
    headers: Dict[str, str] = field(default_factory=dict)
    retried: bool = False

    def __post_init__(self):
        self.headers = {
            k: v for k, v in self.headers.items()
            if k.lower() != AUTHORIZATION_HEADER.lower()
        }

    def headers_with_bearer(self, access_token: Optional[str]) -> Dict[str, str]:
        headers = dict(self.headers)
        if access_token:
            headers[AUTHORIZATION_HEADER] = f"{BEARER_PREFIX} {access_token}"
        return headers


@dataclass
class RefreshOutcome:
    """Successful refresh exchange (refresh_token only if rotated)"""
    access_token: str
    refresh_token: Optional[str] = None


# ============================================================================
# Request Pipeline
# ============================================================================

class RequestPipeline:
    """
    Wraps an aiohttp ClientSession with bearer auth and token refresh.

    Usage:
        async with RequestPipeline(store, config, session_events=bus) as api:
            response = await api.get("/fields")
    """

    def __init__(
        self,
        store: CredentialStore,
        config: Optional[SessionConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
        session_events: Optional[SessionEventBus] = None,
    ):
        """
        Initialize pipeline

        Args:
            store: Credential store shared with SessionGate
            config: Endpoints and timeout (defaults to SessionConfig())
            session: Existing ClientSession (not closed by close())
            session_events: Bus notified after a terminal teardown
        """
        self.logger = logging.getLogger("transport.request_pipeline")
        self.store = store
        self.config = config or SessionConfig()
        self.session_events = session_events
        self._session = session
        self._owns_session = session is None
        self._refresh_task: Optional[asyncio.Task] = None
        self.refresh_count = 0

    async def __aenter__(self) -> "RequestPipeline":
        self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout)
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the owned ClientSession"""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    @property
    def refresh_in_flight(self) -> bool:
        return self._refresh_task is not None and not self._refresh_task.done()

    async def access_token(self) -> Optional[str]:
        """Current bearer credential (None if not held)"""
        return await self.store.get(ACCESS_TOKEN_KEY)

    # ------------------------------------------------------------------------
    # Public request API
    # ------------------------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        data: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        authenticate: bool = True,
    ) -> PipelineResponse:
        """
        Send a request through the pipeline

        Args:
            method: HTTP method
            path: Path relative to config.base_url, or absolute URL
            params: Query parameters
            json: JSON body
            data: Form/raw body (must be replayable)
            headers: Extra headers (any Authorization is replaced)
            authenticate: False for login/registration calls

        Returns:
            PipelineResponse (any status other than a recovered 401)

        Raises:
            aiohttp.ClientError: Transport failure on the request itself
            StoreUnavailableError: Credential store unavailable
        """
        pending = PendingRequest(
            method=method.upper(),
            url=self.config.url_for(path),
            params=params,
            json_body=json,
            data=data,
            headers=dict(headers or {}),
        )

        if not authenticate:
            return await self._send(pending, None)

        access = await self.store.get(ACCESS_TOKEN_KEY)
        response = await self._send(pending, access)

        if response.status != HTTP_UNAUTHORIZED:
            return response

        return await self._recover(pending, access, response)

    async def get(self, path: str, **kwargs) -> PipelineResponse:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> PipelineResponse:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs) -> PipelineResponse:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs) -> PipelineResponse:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs) -> PipelineResponse:
        return await self.request("DELETE", path, **kwargs)

    # ------------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------------

    async def _send(self, pending: PendingRequest, access_token: Optional[str]) -> PipelineResponse:
        session = self._ensure_session()
        async with session.request(
            pending.method,
            pending.url,
            params=pending.params,
            json=pending.json_body,
            data=pending.data,
            headers=pending.headers_with_bearer(access_token),
        ) as resp:
            body = await resp.read()
            response = PipelineResponse(
                status=resp.status,
                headers=resp.headers.copy(),
                body=body,
                method=pending.method,
                url=str(resp.url),
            )

        self.logger.debug(f"{pending.method} {pending.url} -> {response.status}")
        return response

    async def _recover(
        self,
        pending: PendingRequest,
        sent_access: Optional[str],
        original: PipelineResponse,
    ) -> PipelineResponse:
        """Single recovery attempt after a 401"""
        if pending.retried:
            self.logger.info(f"401 on replayed {pending.method} {pending.url}, giving up")
            return original
        pending.retried = True
        self.logger.info(f"401 on {pending.method} {pending.url}, attempting recovery")

        if not self.refresh_in_flight:
            current = await self.store.get(ACCESS_TOKEN_KEY)
            if current and current != sent_access:
                # Rotated by an exchange that finished after we sent
                self.logger.debug(f"Resending with rotated token {token_preview(current)}")
                return await self._send(pending, current)

        new_access = await self._refreshed_access_token()
        if new_access is None:
            return original

        return await self._send(pending, new_access)

    async def _refreshed_access_token(self) -> Optional[str]:
        """Join the in-flight refresh, or start one"""
        task = self._refresh_task
        if task is None or task.done():
            task = asyncio.get_running_loop().create_task(self._run_refresh())
            task.add_done_callback(self._refresh_done)
            self._refresh_task = task
        else:
            self.logger.debug("Refresh already in flight, awaiting its outcome")

        outcome = await asyncio.shield(task)
        return outcome.access_token if outcome is not None else None

    def _refresh_done(self, task: asyncio.Task) -> None:
        if self._refresh_task is task:
            self._refresh_task = None
        if not task.cancelled() and task.exception() is not None:
            self.logger.error(f"Refresh task failed: {task.exception()}")

    async def _run_refresh(self) -> Optional[RefreshOutcome]:
        """
        Refresh exchange + persistence, shared by every waiter

        Returns:
            RefreshOutcome, or None after a terminal teardown
        """
        refresh_token = await self.store.get(REFRESH_TOKEN_KEY)
        if not refresh_token:
            self.logger.warning("No refresh token held, ending session")
            await self._teardown()
            return None

        self.refresh_count += 1
        try:
            outcome = await self._exchange(refresh_token)
        except RefreshNetworkError as e:
            self.logger.warning(f"Token refresh network failure: {e}")
            await self._teardown()
            return None
        except RefreshRejectedError as e:
            self.logger.warning(f"Token refresh rejected (status={e.status}): {e}")
            await self._teardown()
            return None

        await self.store.set(ACCESS_TOKEN_KEY, outcome.access_token)
        if outcome.refresh_token:
            await self.store.set(REFRESH_TOKEN_KEY, outcome.refresh_token)

        self.logger.info(
            f"Access token refreshed ({token_preview(outcome.access_token)}, "
            f"refresh rotated={outcome.refresh_token is not None})"
        )
        return outcome

    async def _exchange(self, refresh_token: str) -> RefreshOutcome:
        """
        Call the refresh endpoint, out-of-band from the pipeline

        Raises:
            RefreshNetworkError: Transport failure or timeout
            RefreshRejectedError: Non-2xx or unusable body
        """
        session = self._ensure_session()
        try:
            async with session.post(
                self.config.refresh_url,
                json={REFRESH_TOKEN_KEY: refresh_token},
            ) as resp:
                status = resp.status
                body = await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RefreshNetworkError(f"{type(e).__name__}: {e}") from e

        if not 200 <= status < 300:
            raise RefreshRejectedError(status, f"Refresh endpoint returned {status}")

        try:
            payload = json.loads(body.decode("utf-8"))
        except ValueError:
            raise RefreshRejectedError(status, "Refresh response is not JSON")

        if not isinstance(payload, dict):
            raise RefreshRejectedError(status, "Refresh response is not a JSON object")

        access_token = payload.get(ACCESS_TOKEN_KEY)
        if not access_token or not isinstance(access_token, str):
            raise RefreshRejectedError(status, "Refresh response has no accessToken")

        new_refresh = payload.get(REFRESH_TOKEN_KEY)
        if not new_refresh or not isinstance(new_refresh, str):
            new_refresh = None

        return RefreshOutcome(access_token=access_token, refresh_token=new_refresh)

    async def _teardown(self) -> None:
        """Delete both credentials and notify subscribers"""
        await self.store.delete(ACCESS_TOKEN_KEY)
        await self.store.delete(REFRESH_TOKEN_KEY)
        self.logger.info("Session credentials cleared")

        if self.session_events is not None:
            self.session_events.publish()
