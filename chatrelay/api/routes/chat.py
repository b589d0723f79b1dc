"""
chatrelay - Relay API

POST /api/ai streams a generated reply as normalized SSE events.
POST /api/ai/complete returns the whole reply as JSON.
"""

from contextlib import aclosing
from typing import AsyncIterator

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.requests import ClientDisconnect
from starlette.types import Receive, Scope, Send

from ...auth.middleware import Identity, authenticate
from ...config import RelayConfig
from ...core.errors import ClientInputError
from ...core.models import GenerationRequest
from ...observability.logging import get_logger
from ...relay import RelaySession, complete
from ..dependencies import get_config, get_http_client, stream_headers
from ..models import CompletionResponse, RelayRequestBody

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["relay"])


def _to_generation_request(body: RelayRequestBody, identity: Identity) -> GenerationRequest:
    """Validate the body before any response bytes are committed."""
    try:
        return GenerationRequest.from_dict(body.to_payload())
    except ClientInputError as exc:
        exc.error.request_id = identity.request_id
        raise


class RelayStreamingResponse(StreamingResponse):
    """
    StreamingResponse that always closes its body iterator.

    A failed downstream write leaves the body generator suspended at its
    `yield`; closing it here runs the relay session's cleanup, which
    closes the upstream connection. A client disconnect ends the
    response quietly instead of reaching the error handlers.
    """

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        except (ClientDisconnect, OSError) as exc:
            logger.info("Client disconnected during stream", error=exc.__class__.__name__)
        finally:
            aclose = getattr(self.body_iterator, "aclose", None)
            if aclose is not None:
                await aclose()


# ============================================================
# Streaming relay
# ============================================================

@router.post("/ai")
async def relay_stream(
    body: RelayRequestBody,
    http_request: Request,
    identity: Identity = Depends(authenticate),
    config: RelayConfig = Depends(get_config),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> StreamingResponse:
    """
    Relay one generation as Server-Sent Events.

    Every stream ends with exactly one `data: [DONE]` or one
    `data: {"error": {...}}` event unless the client disconnects first.
    """
    request = _to_generation_request(body, identity)
    session = RelaySession(
        request,
        config,
        client,
        request_id=identity.request_id,
        is_disconnected=http_request.is_disconnected,
    )

    async def generate() -> AsyncIterator[str]:
        async with aclosing(session.events()) as events:
            async for event in events:
                yield event.to_sse()

    return RelayStreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers=stream_headers(identity.request_id),
    )


# ============================================================
# One-shot completion
# ============================================================

@router.post("/ai/complete", response_model=CompletionResponse)
async def relay_complete(
    body: RelayRequestBody,
    identity: Identity = Depends(authenticate),
    config: RelayConfig = Depends(get_config),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> JSONResponse:
    """Generate the whole reply in one upstream call."""
    request = _to_generation_request(body, identity)
    text = await complete(request, config, client, request_id=identity.request_id)

    return JSONResponse(
        content=CompletionResponse(text=text, provider=request.provider.value).model_dump(),
        headers={"X-Request-Id": identity.request_id},
    )
