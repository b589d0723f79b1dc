"""
chatrelay - Downstream Events

The single normalized protocol sent to the client:

    data: {"fragment": "Hel"}
    data: {"fragment": "lo"}
    data: [DONE]

or, on failure, one error event in place of [DONE]:

    data: {"error": {"category": "quota_exhausted", "message": "..."}}
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..core.models import RelayOutcome

DONE_MARKER = "[DONE]"


class RelayEventType(str, Enum):
    """Types of downstream events."""
    FRAGMENT = "fragment"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class RelayEvent:
    """One downstream event."""
    type: RelayEventType
    text: Optional[str] = None
    category: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def fragment(cls, text: str) -> "RelayEvent":
        return cls(type=RelayEventType.FRAGMENT, text=text)

    @classmethod
    def done(cls) -> "RelayEvent":
        return cls(type=RelayEventType.DONE)

    @classmethod
    def error(cls, category: str, message: str) -> "RelayEvent":
        return cls(type=RelayEventType.ERROR, category=category, message=message)

    @classmethod
    def terminal(cls, outcome: RelayOutcome) -> "RelayEvent":
        """The terminal event for a finished session."""
        if outcome.is_success:
            return cls.done()
        return cls.error(outcome.category or "unknown", outcome.message or "")

    @property
    def is_terminal(self) -> bool:
        return self.type != RelayEventType.FRAGMENT

    def to_dict(self) -> Optional[Dict[str, Any]]:
        """JSON body of the event; None for the bare [DONE] marker."""
        if self.type == RelayEventType.FRAGMENT:
            return {"fragment": self.text}
        if self.type == RelayEventType.ERROR:
            return {"error": {"category": self.category, "message": self.message}}
        return None

    def to_sse(self) -> str:
        """Convert to SSE format string."""
        if self.type == RelayEventType.DONE:
            return f"data: {DONE_MARKER}\n\n"
        return f"data: {json.dumps(self.to_dict(), ensure_ascii=False)}\n\n"
