"""
Session Gate - Authoritative authentication verdict

Module: core.session_gate
Date: 2026-10-18
Version: 0.1.0-alpha

CHANGELOG:
[2026-10-18 v0.1.0-alpha] Initial implementation
  - Tri-state verdict (unknown / authenticated / unauthenticated)
  - Re-evaluation on mount and on every session event
  - Idempotent mount/unmount
  - request_reauth() for login/registration/logout flows

ARCHITECTURE:
SessionGate reads the CredentialStore and TokenInspector and never
talks to RequestPipeline directly. Anything that changes the session
publishes on the SessionEventBus; the gate's subscription schedules an
evaluation on the running loop. Evaluations are serialized so the last
one always reflects the latest store contents.

State machine:
  UNKNOWN ──evaluate──> AUTHENTICATED | UNAUTHENTICATED
  UNKNOWN is never entered again once an evaluation completes.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional, Set

from .constants import ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY
from ..events.session_events import SessionEventBus, Subscription
from ..persistence.credential_store import CredentialStore
from ..security.token_inspector import is_expired


class SessionVerdict(Enum):
    """Authentication state as seen by the application"""
    UNKNOWN = "unknown"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"


class SessionGate:
    """
    Computes and publishes the session verdict.

    Usage:
        gate = SessionGate(store, bus)
        async with gate:
            if gate.verdict is SessionVerdict.AUTHENTICATED:
                ...
    """

    def __init__(
        self,
        store: CredentialStore,
        session_events: SessionEventBus,
        on_change: Optional[Callable[[SessionVerdict], None]] = None,
    ):
        """
        Initialize gate

        Args:
            store: Credential store shared with RequestPipeline
            session_events: Bus to subscribe to
            on_change: Called with the new verdict whenever it changes
        """
        self.logger = logging.getLogger("core.session_gate")
        self.store = store
        self.session_events = session_events
        self.on_change = on_change
        self._verdict = SessionVerdict.UNKNOWN
        self._subscription: Optional[Subscription] = None
        self._evaluate_lock = asyncio.Lock()
        self._pending: Set[asyncio.Task] = set()

    @property
    def verdict(self) -> SessionVerdict:
        return self._verdict

    @property
    def is_authenticated(self) -> bool:
        return self._verdict is SessionVerdict.AUTHENTICATED

    @property
    def is_mounted(self) -> bool:
        return self._subscription is not None

    async def __aenter__(self) -> "SessionGate":
        await self.mount()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.unmount()
        await self.settle()

    # ------------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------------

    async def mount(self) -> SessionVerdict:
        """Subscribe (once) and evaluate"""
        if self._subscription is None:
            self._subscription = self.session_events.subscribe(self._on_session_event)
            self.logger.debug("Gate mounted")
        return await self.evaluate()

    def unmount(self) -> None:
        """Unsubscribe (no-op if not mounted)"""
        if self._subscription is not None:
            self.session_events.unsubscribe(self._subscription)
            self._subscription = None
            self.logger.debug("Gate unmounted")

    # ------------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------------

    async def evaluate(self) -> SessionVerdict:
        """
        Recompute the verdict from the credential store

        Returns:
            AUTHENTICATED or UNAUTHENTICATED

        Raises:
            StoreUnavailableError: Verdict is left unchanged
        """
        async with self._evaluate_lock:
            access = await self.store.get(ACCESS_TOKEN_KEY)

            if not access:
                await self.store.delete(REFRESH_TOKEN_KEY)
                verdict = SessionVerdict.UNAUTHENTICATED
            elif not is_expired(access):
                verdict = SessionVerdict.AUTHENTICATED
            else:
                self.logger.info("Access token expired, clearing session")
                await self.store.delete(ACCESS_TOKEN_KEY)
                await self.store.delete(REFRESH_TOKEN_KEY)
                verdict = SessionVerdict.UNAUTHENTICATED

            self._set_verdict(verdict)
            return verdict

    def _set_verdict(self, verdict: SessionVerdict) -> None:
        previous = self._verdict
        self._verdict = verdict
        if verdict is previous:
            return

        self.logger.info(f"Session verdict: {previous.value} -> {verdict.value}")
        if self.on_change is not None:
            try:
                self.on_change(verdict)
            except Exception as e:
                self.logger.error(f"on_change callback failed: {e}", exc_info=True)

    def _on_session_event(self) -> None:
        """Bus listener: schedule a re-evaluation"""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.logger.warning("Session event outside event loop, evaluation skipped")
            return

        task = loop.create_task(self.evaluate())
        self._pending.add(task)
        task.add_done_callback(self._evaluation_done)

    def _evaluation_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            self.logger.error(f"Session evaluation failed: {task.exception()}")

    async def settle(self) -> SessionVerdict:
        """Wait for every scheduled evaluation to finish"""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        return self._verdict

    async def request_reauth(self) -> SessionVerdict:
        """
        Ask every subscriber to re-evaluate

        Call after login, registration or logout.

        Returns:
            Verdict once this gate's evaluation has completed
        """
        self.session_events.publish()
        if not self.is_mounted:
            return await self.evaluate()
        return await self.settle()
