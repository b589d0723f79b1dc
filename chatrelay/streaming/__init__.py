"""
chatrelay - Streaming Module

Protocol pieces of the relay:
- Incremental SSE line decoding across chunk boundaries
- Per-provider text delta extraction
- Normalized downstream events
"""

from .decoder import (
    DATA_PREFIX,
    DEFAULT_MAX_LINE_BYTES,
    FrameDecoder,
)
from .extractor import (
    DONE_SENTINEL,
    extract,
)
from .events import (
    DONE_MARKER,
    RelayEvent,
    RelayEventType,
)

__all__ = [
    # Decoder
    "DATA_PREFIX",
    "DEFAULT_MAX_LINE_BYTES",
    "FrameDecoder",
    # Extractor
    "DONE_SENTINEL",
    "extract",
    # Events
    "DONE_MARKER",
    "RelayEvent",
    "RelayEventType",
]
