"""
chatrelay - API Layer

HTTP surface hosting the relay:
- Streaming relay and one-shot completion
- Admin login issuing session tokens
"""

from .dependencies import get_config, get_http_client, stream_headers
from .models import (
    CompletionResponse,
    HealthResponse,
    HistoryTurn,
    LoginRequest,
    LoginResponse,
    RelayRequestBody,
)
from .routes import auth_router, chat_router

__all__ = [
    # Routers
    "auth_router",
    "chat_router",
    # Models
    "CompletionResponse",
    "HealthResponse",
    "HistoryTurn",
    "LoginRequest",
    "LoginResponse",
    "RelayRequestBody",
    # Dependencies
    "get_config",
    "get_http_client",
    "stream_headers",
]
