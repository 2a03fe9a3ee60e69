"""
Session Event Bus - Session state change notifications

Module: events.session_events
Date: 2026-10-18
Version: 0.1.0-alpha

CHANGELOG:
[2026-10-18 v0.1.0-alpha] Initial implementation
  - Explicit registry object (no module-level listener list)
  - Subscription handles
  - Synchronous fire-and-forget delivery

ARCHITECTURE:
SessionEventBus decouples the parts of the client that change the
session (RequestPipeline, AuthClient) from the parts that display it
(SessionGate and any other consumer). Neither side holds a reference
to the other, only to the bus.

Delivery guarantees:
  - Every live subscription receives each publish exactly once
  - A subscription removed before or during a publish is not invoked
    after unsubscribe() returns
  - A failing listener does not stop delivery to the others
"""

import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict


Listener = Callable[[], None]


@dataclass(frozen=True)
class Subscription:
    """Handle returned by subscribe()"""
    subscription_id: int
    listener: Listener = field(compare=False, repr=False)


class SessionEventBus:
    """Publish/subscribe channel for "session state may have changed"."""

    def __init__(self):
        self.logger = logging.getLogger("events.session_events")
        self._subscriptions: Dict[int, Subscription] = {}
        self._ids = itertools.count(1)

    @property
    def listener_count(self) -> int:
        return len(self._subscriptions)

    def subscribe(self, listener: Listener) -> Subscription:
        """
        Register a listener

        The same callable may be subscribed several times; each
        subscription is delivered independently.

        Args:
            listener: Callable with no arguments

        Returns:
            Subscription handle for unsubscribe()
        """
        if not callable(listener):
            raise TypeError("Listener must be callable")

        subscription = Subscription(next(self._ids), listener)
        self._subscriptions[subscription.subscription_id] = subscription
        self.logger.debug(
            f"Subscribed #{subscription.subscription_id} ({self.listener_count} listeners)"
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscription (no-op if already removed)"""
        if self._subscriptions.pop(subscription.subscription_id, None) is not None:
            self.logger.debug(
                f"Unsubscribed #{subscription.subscription_id} ({self.listener_count} listeners)"
            )

    def publish(self) -> None:
        """Notify every live subscriber"""
        pending = list(self._subscriptions.values())
        self.logger.debug(f"Publishing session event to {len(pending)} listeners")

        for subscription in pending:
            # Removed by an earlier listener during this publish
            if subscription.subscription_id not in self._subscriptions:
                continue
            try:
                subscription.listener()
            except Exception as e:
                self.logger.error(
                    f"Listener #{subscription.subscription_id} failed: {e}",
                    exc_info=True,
                )

    def clear(self) -> None:
        """Drop every subscription"""
        self._subscriptions.clear()
