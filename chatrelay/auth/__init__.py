"""
chatrelay Auth Module

HMAC-signed session tokens and the FastAPI dependency that checks them.
"""

from .middleware import (
    TOKEN_HEADER,
    Identity,
    authenticate,
    check_token,
    generate_request_id,
)
from .tokens import (
    issue_session_token,
    sign_token,
    verify_token,
)

__all__ = [
    "TOKEN_HEADER",
    "Identity",
    "authenticate",
    "check_token",
    "generate_request_id",
    "issue_session_token",
    "sign_token",
    "verify_token",
]
