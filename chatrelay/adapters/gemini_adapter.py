"""
chatrelay - Google Gemini Provider Adapter (Provider A)

Token-array style: text arrives at candidates[0].content.parts[0].text.
"""

from typing import Any, Dict, List

from .base import GenerationSettings, ProviderAdapter, UpstreamCall
from ..core.models import GenerationRequest, ProviderId, Role


DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1"
DEFAULT_MODEL = "gemini-2.5-flash"

# Gemini has no system role on this endpoint; the instruction is seeded
# as a user turn that the model has already acknowledged.
SYSTEM_ACK = "Understood."


def convert_contents(request: GenerationRequest) -> List[Dict[str, Any]]:
    """Convert the normalized conversation to Gemini `contents`."""
    contents: List[Dict[str, Any]] = []

    if request.system_instruction:
        contents.append({"role": "user", "parts": [{"text": request.system_instruction}]})
        contents.append({"role": "model", "parts": [{"text": SYSTEM_ACK}]})

    for turn in request.prior_turns:
        role = "model" if turn.role == Role.ASSISTANT else "user"
        contents.append({"role": role, "parts": [{"text": turn.text}]})

    contents.append({"role": "user", "parts": [{"text": request.new_user_text}]})
    return contents


def _build_payload(
    request: GenerationRequest,
    settings: GenerationSettings
) -> Dict[str, Any]:
    return {
        "contents": convert_contents(request),
        "generationConfig": {
            "maxOutputTokens": settings.max_output_tokens,
            "temperature": settings.temperature,
        },
    }


def _headers(api_key: str) -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "x-goog-api-key": api_key,
    }


def build_stream_call(
    request: GenerationRequest,
    settings: GenerationSettings,
    api_key: str
) -> UpstreamCall:
    """Build the SSE streaming request."""
    base_url = settings.base_url.rstrip("/")
    return UpstreamCall(
        method="POST",
        url=f"{base_url}/models/{settings.model}:streamGenerateContent?alt=sse",
        headers=_headers(api_key),
        json=_build_payload(request, settings),
    )


def build_oneshot_call(
    request: GenerationRequest,
    settings: GenerationSettings,
    api_key: str
) -> UpstreamCall:
    """Build the non-streaming request."""
    base_url = settings.base_url.rstrip("/")
    return UpstreamCall(
        method="POST",
        url=f"{base_url}/models/{settings.model}:generateContent",
        headers=_headers(api_key),
        json=_build_payload(request, settings),
    )


GEMINI_ADAPTER = ProviderAdapter(
    kind=ProviderId.GEMINI,
    display_name="Gemini",
    build_stream_call=build_stream_call,
    build_oneshot_call=build_oneshot_call,
    text_path=("candidates", 0, "content", "parts", 0, "text"),
    oneshot_text_path=("candidates", 0, "content", "parts", 0, "text"),
    error_message_path=("error", "message"),
    quota_markers=("quota", "resource_exhausted"),
)
