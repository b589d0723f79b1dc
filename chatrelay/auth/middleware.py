"""
chatrelay - Auth Middleware

FastAPI dependency that validates the session token on relay routes and
binds the caller to the logging context.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, Request

from ..config import RelayConfig
from ..core.errors import ConfigurationError, InvalidSessionError
from ..observability.logging import LogContext
from .tokens import verify_token

TOKEN_HEADER = "X-Agent-Token"


@dataclass(frozen=True)
class Identity:
    """Authenticated caller of one request."""
    subject: str
    request_id: str


def generate_request_id() -> str:
    """Generate a unique request ID."""
    return f"req_{uuid.uuid4().hex[:24]}"


def check_token(token: Optional[str], config: RelayConfig, request_id: str = "") -> Identity:
    """
    Validate a session token against the configured secret.

    Raises:
        ConfigurationError: If AGENT_API_KEY is not configured
        InvalidSessionError: If the token is missing, forged or expired
    """
    if not config.session_secret:
        raise ConfigurationError("AGENT_API_KEY not configured.", request_id=request_id)

    payload = verify_token(token, config.session_secret)
    if payload is None:
        raise InvalidSessionError(request_id=request_id)

    return Identity(subject=str(payload.get("sub", "")), request_id=request_id)


async def authenticate(
    request: Request,
    x_agent_token: Optional[str] = Header(None, alias=TOKEN_HEADER),
) -> Identity:
    """
    FastAPI dependency for routes that require a session.

    Usage:
        @router.post("/api/ai")
        async def relay(identity: Identity = Depends(authenticate)):
            ...

    Raises:
        ConfigurationError: If the signing secret is missing
        InvalidSessionError: If the token does not verify
    """
    request_id = generate_request_id()
    identity = check_token(x_agent_token, request.app.state.config, request_id)
    LogContext.set_current(LogContext(request_id=request_id, subject=identity.subject))
    return identity
