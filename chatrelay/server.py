"""
chatrelay - Main API Server

FastAPI application hosting the streaming relay.

Features:
- Streaming relay to Gemini or OpenAI with one normalized SSE protocol
- One-shot (non-streaming) completion
- HMAC session-token login
- Structured JSON logging and Prometheus metrics
"""

import os
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from . import __version__
from .api import HealthResponse, auth_router, chat_router
from .config import RelayConfig
from .core.errors import CATEGORY_CLIENT_INPUT, ErrorDetails, RelayException
from .observability import get_logger, metrics_endpoint, setup_logging

logger = get_logger(__name__)


def _build_http_client(config: RelayConfig) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.session_timeout, connect=config.connect_timeout),
    )


def create_app(
    config: Optional[RelayConfig] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Build the relay application.

    Args:
        config: Relay configuration; read from the environment when omitted
        client: Upstream HTTP client; the app creates and owns one when omitted
    """
    config = config or RelayConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Own the shared upstream client for the app's lifetime."""
        owns_client = client is None
        app.state.http_client = _build_http_client(config) if owns_client else client

        providers = [p.value for p in config.configured_providers()]
        if not providers:
            logger.warning("No providers configured. Set GEMINI_API_KEY or OPENAI_API_KEY")
        if not config.session_secret:
            logger.warning("AGENT_API_KEY not set; relay routes will reject every request")
        logger.info("chatrelay server ready", version=__version__, providers=providers)

        try:
            yield
        finally:
            if owns_client:
                await app.state.http_client.aclose()
            app.state.http_client = None
            logger.info("chatrelay server stopped")

    app = FastAPI(
        title="chatrelay",
        description="Streaming relay for Gemini and OpenAI chat generation",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.http_client = None

    app.include_router(chat_router)
    app.include_router(auth_router)

    # ============================================================
    # Core Endpoints
    # ============================================================

    @app.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            version=__version__,
            providers=[p.value for p in config.configured_providers()],
        )

    @app.get("/metrics")
    async def prometheus_metrics():
        """Prometheus metrics endpoint."""
        return metrics_endpoint()

    # ============================================================
    # Error handlers
    # ============================================================

    @app.exception_handler(RelayException)
    async def relay_exception_handler(request: Request, exc: RelayException):
        """Handle all relay errors raised outside a stream."""
        headers = {}
        if exc.error.request_id:
            headers["X-Request-Id"] = exc.error.request_id
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.error.to_dict(),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Report body validation failures as client input errors."""
        first = exc.errors()[0] if exc.errors() else {}
        loc = [str(part) for part in first.get("loc", ()) if part != "body"]
        error = ErrorDetails(
            category=CATEGORY_CLIENT_INPUT,
            message=first.get("msg", "Invalid request body"),
            param=".".join(loc) or None,
        )
        return JSONResponse(status_code=400, content=error.to_dict())

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error", path=request.url.path)
        error = ErrorDetails(category="internal", message="An unexpected error occurred")
        return JSONResponse(status_code=500, content=error.to_dict())

    return app


# ============================================================
# Run server
# ============================================================

def main() -> None:
    """Console entry point: run the relay under uvicorn."""
    import uvicorn

    setup_logging(
        level=os.getenv("LOG_LEVEL", "INFO"),
        json_output=os.getenv("LOG_FORMAT", "json").lower() == "json",
    )
    uvicorn.run(
        create_app(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
