"""
chatrelay - SSE Frame Decoder

Turns an arbitrary sequence of upstream byte chunks into complete
`data:` event lines. Chunk boundaries can fall anywhere, including in
the middle of a multi-byte UTF-8 sequence; the incomplete tail is kept
until the next chunk arrives.

Lines that are empty or not `data:` lines (event names, comments,
keep-alives, blank separators) are transport noise and never returned.
"""

import codecs
from typing import List, Optional

from ..core.errors import LineTooLongError
from ..observability.logging import get_logger

logger = get_logger(__name__)

DATA_PREFIX = "data:"
DEFAULT_MAX_LINE_BYTES = 1024 * 1024


class FrameDecoder:
    """
    Incremental line decoder. One instance per relay session.

    Usage:
        decoder = FrameDecoder()
        for chunk in chunks:
            for line in decoder.feed(chunk):
                handle(line)
        decoder.flush()
    """

    def __init__(self, max_line_bytes: int = DEFAULT_MAX_LINE_BYTES):
        self.max_line_bytes = max_line_bytes
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._closed = False

    @property
    def pending(self) -> str:
        """Buffered partial line not yet terminated by a newline."""
        return self._buffer

    def feed(self, chunk: bytes) -> List[str]:
        """
        Append a chunk and return the complete event lines it finished.

        Raises:
            LineTooLongError: If the partial line outgrows max_line_bytes
        """
        if self._closed:
            raise RuntimeError("FrameDecoder.feed() called after flush()")

        self._buffer += self._decoder.decode(chunk)
        segments = self._buffer.split("\n")
        self._buffer = segments.pop()

        if len(self._buffer.encode("utf-8")) > self.max_line_bytes:
            raise LineTooLongError(self.max_line_bytes)

        lines = []
        for segment in segments:
            line = segment.rstrip("\r")
            if line and line.startswith(DATA_PREFIX):
                lines.append(line)
        return lines

    def flush(self) -> Optional[str]:
        """
        End of stream. A trailing partial line is discarded, never parsed.

        Always returns None; the signature leaves room for a final line.
        """
        self._buffer += self._decoder.decode(b"", final=True)
        if self._buffer:
            logger.debug(
                "Discarding unterminated trailing line",
                discarded_chars=len(self._buffer),
            )
        self._buffer = ""
        self._closed = True
        return None
