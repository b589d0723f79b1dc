"""
chatrelay - Login API

POST /api/auth exchanges the admin username/password for a signed
session token.
"""

import asyncio
import hmac

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...auth.middleware import generate_request_id
from ...auth.tokens import issue_session_token
from ...config import RelayConfig
from ...core.errors import ClientInputError, ConfigurationError, InvalidSessionError
from ...observability.logging import get_logger
from ..dependencies import get_config
from ..models import LoginRequest, LoginResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])

# Delay before answering a failed login
LOGIN_FAILURE_DELAY_SECONDS = 0.5


def _matches(given: str, expected: str) -> bool:
    return hmac.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


@router.post("/auth", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    config: RelayConfig = Depends(get_config),
) -> JSONResponse:
    """
    Validate admin credentials and issue a session token.

    Errors:
        400: username or password missing
        401: wrong credentials
        500: ADMIN_USERNAME, ADMIN_PASSWORD or AGENT_API_KEY not configured
    """
    request_id = generate_request_id()

    if not (config.admin_username and config.admin_password and config.session_secret):
        raise ConfigurationError(
            "ADMIN_USERNAME, ADMIN_PASSWORD, or AGENT_API_KEY not configured.",
            request_id=request_id,
        )

    if not body.username or not body.password:
        raise ClientInputError("username and password are required.", request_id=request_id)

    user_ok = _matches(body.username, config.admin_username)
    pass_ok = _matches(body.password, config.admin_password)
    if not (user_ok and pass_ok):
        logger.warning("Login rejected", request_id=request_id)
        await asyncio.sleep(LOGIN_FAILURE_DELAY_SECONDS)
        raise InvalidSessionError("Invalid username or password.", request_id=request_id)

    token, expires_in = issue_session_token(
        body.username,
        config.session_secret,
        ttl_seconds=config.session_ttl_seconds,
    )
    logger.info("Session issued", request_id=request_id, subject=body.username)

    return JSONResponse(
        content=LoginResponse(token=token, expiresIn=expires_in).model_dump(),
        headers={"X-Request-Id": request_id},
    )
