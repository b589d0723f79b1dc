"""
chatrelay - OpenAI Provider Adapter (Provider B)

Delta-chat style: text arrives at choices[0].delta.content.
"""

from typing import Any, Dict, List

from .base import GenerationSettings, ProviderAdapter, UpstreamCall
from ..core.models import GenerationRequest, ProviderId


DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o-mini"


def convert_messages(request: GenerationRequest) -> List[Dict[str, Any]]:
    """Convert the normalized conversation to OpenAI `messages`."""
    messages: List[Dict[str, Any]] = []

    if request.system_instruction:
        messages.append({"role": "system", "content": request.system_instruction})

    for turn in request.prior_turns:
        messages.append({"role": turn.role.value, "content": turn.text})

    messages.append({"role": "user", "content": request.new_user_text})
    return messages


def _build_payload(
    request: GenerationRequest,
    settings: GenerationSettings,
    stream: bool
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "model": settings.model,
        "messages": convert_messages(request),
        "max_tokens": settings.max_output_tokens,
        "temperature": settings.temperature,
    }
    if stream:
        payload["stream"] = True
    return payload


def _call(
    request: GenerationRequest,
    settings: GenerationSettings,
    api_key: str,
    stream: bool
) -> UpstreamCall:
    return UpstreamCall(
        method="POST",
        url=f"{settings.base_url.rstrip('/')}/chat/completions",
        headers={
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        },
        json=_build_payload(request, settings, stream),
    )


def build_stream_call(
    request: GenerationRequest,
    settings: GenerationSettings,
    api_key: str
) -> UpstreamCall:
    return _call(request, settings, api_key, stream=True)


def build_oneshot_call(
    request: GenerationRequest,
    settings: GenerationSettings,
    api_key: str
) -> UpstreamCall:
    return _call(request, settings, api_key, stream=False)


OPENAI_ADAPTER = ProviderAdapter(
    kind=ProviderId.OPENAI,
    display_name="OpenAI",
    build_stream_call=build_stream_call,
    build_oneshot_call=build_oneshot_call,
    text_path=("choices", 0, "delta", "content"),
    oneshot_text_path=("choices", 0, "message", "content"),
    error_message_path=("error", "message"),
    quota_markers=("quota", "insufficient_quota"),
)
