"""
Core module - Session verdict and configuration

Provides:
- SessionGate: tri-state authentication verdict
- SessionConfig: endpoints, timeout, credential file
"""

from .config import SessionConfig
from .session_gate import SessionGate, SessionVerdict

__all__ = [
    "SessionConfig",
    "SessionGate",
    "SessionVerdict",
]
