"""
chatrelay - One-shot Completion

Non-streaming variant of the relay: same validation, adapter, credential
and error classification path, but one JSON request and one JSON answer.
"""

import asyncio
import json
import uuid
from typing import Optional

import httpx

from ..adapters import dig, get_adapter
from ..config import CREDENTIAL_ENV_VARS, RelayConfig
from ..core.classifier import rejection_from_response
from ..core.errors import (
    ConfigurationError,
    RelayTimeoutError,
    TransportError,
    UpstreamRejection,
)
from ..core.models import ErrorCategory, GenerationRequest
from ..observability.logging import LogContext, get_logger

logger = get_logger(__name__)


async def complete(
    request: GenerationRequest,
    config: RelayConfig,
    client: httpx.AsyncClient,
    request_id: Optional[str] = None,
) -> str:
    """
    Generate a full reply in one upstream call.

    Returns:
        The generated text, or "" when the provider returned none

    Raises:
        ClientInputError: Invalid request
        ConfigurationError: Provider credential not configured
        UpstreamRejection: Provider answered with a non-success status
        TransportError: Network failure or timeout
    """
    request_id = request_id or f"req_{uuid.uuid4().hex[:24]}"
    provider = request.provider.value if hasattr(request.provider, "value") else str(request.provider)
    LogContext.set_current((LogContext.get_current() or LogContext()).merged(request_id=request_id, provider=provider))

    request.validate()
    adapter = get_adapter(request.provider)

    credential = config.resolve_credential(request.provider)
    if not credential:
        raise ConfigurationError(
            f"{CREDENTIAL_ENV_VARS.get(request.provider, 'Provider API key')} not configured.",
            provider=provider,
            request_id=request_id,
        )

    call = adapter.build_oneshot_call(request, config.generation_settings(request.provider), credential)

    try:
        response = await asyncio.wait_for(
            client.request(
                call.method,
                call.url,
                headers=call.headers,
                json=call.json,
                timeout=httpx.Timeout(config.session_timeout, connect=config.connect_timeout),
            ),
            config.session_timeout,
        )
    except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
        raise RelayTimeoutError(
            f"Upstream request timed out after {config.session_timeout:g}s",
            provider=provider,
            request_id=request_id,
        ) from exc
    except httpx.HTTPError as exc:
        raise TransportError(
            f"Upstream request failed: {exc or exc.__class__.__name__}",
            provider=provider,
            request_id=request_id,
        ) from exc

    if not response.is_success:
        rejection = rejection_from_response(
            adapter, response.status_code, response.content, request_id=request_id
        )
        logger.warning(
            "Upstream rejected request",
            upstream_status=response.status_code,
            category=rejection.category,
        )
        raise rejection

    try:
        data = response.json()
    except json.JSONDecodeError:
        raise UpstreamRejection(
            category=ErrorCategory.MALFORMED.value,
            message=f"{adapter.display_name} returned a non-JSON response",
            provider=provider,
            http_status=response.status_code,
            request_id=request_id,
        ) from None

    text = dig(data, adapter.oneshot_text_path)
    if not isinstance(text, str):
        text = ""

    logger.info("One-shot completion finished", chars=len(text))
    return text
