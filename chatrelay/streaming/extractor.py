"""
chatrelay - Delta Extractor

Pulls the generated-text delta out of one decoded `data:` line using the
active adapter's payload path. A line that fails to parse is a decode
anomaly: it is logged and skipped, never fatal.
"""

import json
from typing import Callable, Optional

from .decoder import DATA_PREFIX
from ..adapters.base import ProviderAdapter, dig
from ..core.models import Fragment
from ..observability.logging import get_logger

logger = get_logger(__name__)

DONE_SENTINEL = "[DONE]"


def extract(
    line: str,
    adapter: ProviderAdapter,
    on_anomaly: Optional[Callable[[str], None]] = None
) -> Optional[Fragment]:
    """
    Extract zero or one Fragment from a decoded event line.

    Args:
        line: A complete line starting with "data:"
        adapter: Adapter whose text path applies
        on_anomaly: Called with the raw payload when it is not valid JSON

    Returns:
        A Fragment when the payload carries non-empty text, else None
    """
    payload = line[len(DATA_PREFIX):] if line.startswith(DATA_PREFIX) else line
    payload = payload.strip()

    if not payload or payload == DONE_SENTINEL:
        return None

    try:
        data = json.loads(payload)
    except json.JSONDecodeError:
        logger.debug(
            "Skipping malformed event line",
            provider=adapter.kind.value,
            payload_preview=payload[:120],
        )
        if on_anomaly is not None:
            on_anomaly(payload)
        return None

    text = dig(data, adapter.text_path)
    if not isinstance(text, str) or not text:
        # Metadata-only event (finish reason, usage, role announcement)
        return None

    return Fragment(text=text)
