"""Session events - publish/subscribe for session state changes"""

from .session_events import SessionEventBus, Subscription

__all__ = ["SessionEventBus", "Subscription"]
