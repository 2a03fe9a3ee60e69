"""
Session Client

Client-side authentication session manager: keeps the access/refresh
token pair, detects stale access tokens, renews them transparently on
401 and tells the rest of the application when the session changes.

CHANGELOG:
[2026-10-18 v0.1.0-alpha] Initial project setup

ARCHITECTURE:
- Layer 1 : Persistence (CredentialStore, JSONStore)
- Layer 2 : Security (TokenInspector, AuthClient)
- Layer 3 : Transport (RequestPipeline) and Events (SessionEventBus)
- Layer 4 : Core (SessionGate, configuration)
"""

__version__ = "0.1.0-alpha"

from .core.config import SessionConfig
from .core.session_gate import SessionGate, SessionVerdict
from .events.session_events import SessionEventBus, Subscription
from .persistence.credential_store import (
    CredentialStore,
    CredentialStoreError,
    FileCredentialStore,
    MemoryCredentialStore,
    StoreUnavailableError,
)
from .security.auth_client import AuthClient, AuthenticationError
from .security.token_inspector import is_expired
from .transport.request_pipeline import PipelineResponse, RequestPipeline

__all__ = [
    "SessionConfig",
    "SessionGate",
    "SessionVerdict",
    "SessionEventBus",
    "Subscription",
    "CredentialStore",
    "CredentialStoreError",
    "FileCredentialStore",
    "MemoryCredentialStore",
    "StoreUnavailableError",
    "AuthClient",
    "AuthenticationError",
    "is_expired",
    "PipelineResponse",
    "RequestPipeline",
]
