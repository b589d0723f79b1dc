"""
chatrelay - API Dependencies

Shared dependencies for FastAPI routes. The configuration and the
upstream HTTP client are owned by the application lifespan and stored
on `app.state`.
"""

import httpx
from fastapi import Request

from ..config import RelayConfig
from ..core.errors import TransportError


def get_config(request: Request) -> RelayConfig:
    """Process-wide relay configuration."""
    return request.app.state.config


def get_http_client(request: Request) -> httpx.AsyncClient:
    """
    Shared upstream HTTP client.

    Raises:
        TransportError: If the server has not finished starting up
    """
    client = getattr(request.app.state, "http_client", None)
    if client is None:
        raise TransportError(
            "Upstream client not initialized. Server may be starting up.",
            status_code=503,
        )
    return client


def stream_headers(request_id: str) -> dict:
    """Response headers for the relay event stream."""
    return {
        "Cache-Control": "no-cache",
        "Connection": "keep-alive",
        "X-Accel-Buffering": "no",
        "X-Request-Id": request_id,
    }
