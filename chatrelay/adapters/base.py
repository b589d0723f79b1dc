"""
chatrelay - Provider Adapter Base

A provider adapter is a plain capability record, not a class hierarchy.
Each provider module builds one `ProviderAdapter` and the dispatch table
in `chatrelay.adapters` selects it by `ProviderId`.

The adapter is responsible for:
1. Converting the normalized GenerationRequest -> provider wire request
2. Naming where generated text lives in a provider payload
3. Naming the provider's error shape and quota markers
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

from ..core.models import GenerationRequest, ProviderId


PathSegment = Union[str, int]

# {"error": {"message": "..."}}, shared by Gemini and OpenAI today
DEFAULT_ERROR_MESSAGE_PATH: Tuple[PathSegment, ...] = ("error", "message")


@dataclass(frozen=True)
class UpstreamCall:
    """A fully built upstream HTTP request."""
    method: str
    url: str
    headers: Dict[str, str]
    json: Dict[str, Any]


@dataclass(frozen=True)
class GenerationSettings:
    """Per-provider request settings taken from configuration."""
    base_url: str
    model: str
    max_output_tokens: int = 2000
    temperature: float = 0.7


# (request, settings, credential) -> UpstreamCall
CallBuilder = Callable[[GenerationRequest, GenerationSettings, str], UpstreamCall]


@dataclass(frozen=True)
class ProviderAdapter:
    """Everything the relay needs to know about one provider."""
    kind: ProviderId
    display_name: str
    build_stream_call: CallBuilder
    build_oneshot_call: CallBuilder
    text_path: Tuple[PathSegment, ...]
    oneshot_text_path: Tuple[PathSegment, ...]
    error_message_path: Tuple[PathSegment, ...] = DEFAULT_ERROR_MESSAGE_PATH
    quota_markers: Tuple[str, ...] = field(default_factory=tuple)


def dig(payload: Any, path: Sequence[PathSegment]) -> Any:
    """
    Walk `path` through nested dicts and lists.

    Returns None as soon as a segment is missing or the container has
    the wrong type, so metadata-only events simply yield nothing.
    """
    current = payload
    for segment in path:
        if isinstance(segment, int):
            if not isinstance(current, list) or not -len(current) <= segment < len(current):
                return None
            current = current[segment]
        else:
            if not isinstance(current, dict) or segment not in current:
                return None
            current = current[segment]
    return current


def parse_error_message(
    raw_body: Union[str, bytes],
    path: Sequence[PathSegment] = DEFAULT_ERROR_MESSAGE_PATH,
) -> Optional[str]:
    """
    Extract the vendor message found at `path` in a provider error body.

    Returns None when the body is not JSON or has no string at `path`.
    """
    if isinstance(raw_body, bytes):
        raw_body = raw_body.decode("utf-8", errors="replace")
    try:
        data = json.loads(raw_body)
    except (TypeError, ValueError):
        return None

    message = dig(data, path)
    if not isinstance(message, str):
        return None
    return message
