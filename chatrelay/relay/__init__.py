"""
chatrelay Relay Module

Session orchestration: one streaming relay per client request, plus the
non-streaming one-shot variant.
"""

from .oneshot import complete
from .session import DisconnectCheck, RelaySession, SessionState

__all__ = [
    "DisconnectCheck",
    "RelaySession",
    "SessionState",
    "complete",
]
