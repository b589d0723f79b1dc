"""
chatrelay - Error Definitions

Relay error taxonomy. Every kind except decode anomalies ends the
session and is surfaced to the client as exactly one error event (or,
outside a stream, as a JSON error body).

Decode anomalies (a single malformed event line) are never raised:
the extractor logs and skips them.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


# Categories for failures that are not classified upstream rejections.
CATEGORY_CLIENT_INPUT = "client_input"
CATEGORY_CONFIGURATION = "configuration"
CATEGORY_TRANSPORT = "transport"
CATEGORY_UNAVAILABLE = "unavailable"
CATEGORY_AUTH_FAILURE = "auth_failure"


@dataclass
class ErrorDetails:
    """Full error information for the terminal event or API response."""
    # Core fields (always present)
    category: str
    message: str

    # Context fields
    provider: Optional[str] = None
    param: Optional[str] = None
    request_id: str = ""
    http_status: Optional[int] = None

    # Debug fields
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "category": self.category,
            "message": self.message,
        }

        if self.provider:
            result["provider"] = self.provider
        if self.param:
            result["param"] = self.param
        if self.request_id:
            result["request_id"] = self.request_id
        if self.http_status is not None:
            result["upstream_status"] = self.http_status
        if self.details:
            result["details"] = self.details

        return {"error": result}


class RelayException(Exception):
    """Base exception for all relay errors."""

    outcome_kind = "transport_error"

    def __init__(self, error: ErrorDetails, status_code: int = 500):
        self.error = error
        self.status_code = status_code
        super().__init__(error.message)


# ============================================================
# Errors raised before any upstream call
# ============================================================

class ClientInputError(RelayException):
    """Malformed or missing request fields."""

    outcome_kind = "client_input_error"

    def __init__(self, message: str, param: str = "", request_id: str = ""):
        super().__init__(
            ErrorDetails(
                category=CATEGORY_CLIENT_INPUT,
                message=message,
                param=param or None,
                request_id=request_id,
            ),
            status_code=400
        )


class ConfigurationError(RelayException):
    """A credential or secret the relay needs is not configured."""

    outcome_kind = "configuration_error"

    def __init__(self, message: str, provider: str = "", request_id: str = ""):
        super().__init__(
            ErrorDetails(
                category=CATEGORY_CONFIGURATION,
                message=message,
                provider=provider or None,
                request_id=request_id,
            ),
            status_code=500
        )


class InvalidSessionError(RelayException):
    """Session token missing, forged or expired."""

    outcome_kind = "client_input_error"

    def __init__(
        self,
        message: str = "Unauthorized. Session invalid or expired - please log in again.",
        request_id: str = ""
    ):
        super().__init__(
            ErrorDetails(
                category=CATEGORY_AUTH_FAILURE,
                message=message,
                request_id=request_id,
            ),
            status_code=401
        )


# ============================================================
# Upstream errors
# ============================================================

class UpstreamRejection(RelayException):
    """Provider answered the opening request with a non-success status."""

    outcome_kind = "upstream_error"

    def __init__(
        self,
        category: str,
        message: str,
        provider: str,
        http_status: int,
        request_id: str = ""
    ):
        super().__init__(
            ErrorDetails(
                category=category,
                message=message,
                provider=provider,
                request_id=request_id,
                http_status=http_status,
            ),
            status_code=502
        )

    @property
    def category(self) -> str:
        return self.error.category


class TransportError(RelayException):
    """Network failure while opening or reading the upstream stream."""

    outcome_kind = "transport_error"

    def __init__(
        self,
        message: str,
        provider: str = "",
        request_id: str = "",
        category: str = CATEGORY_TRANSPORT,
        status_code: int = 502
    ):
        super().__init__(
            ErrorDetails(
                category=category,
                message=message,
                provider=provider or None,
                request_id=request_id,
            ),
            status_code=status_code
        )


class RelayTimeoutError(TransportError):
    """First-byte or total session deadline expired."""

    def __init__(self, message: str, provider: str = "", request_id: str = ""):
        super().__init__(
            message,
            provider=provider,
            request_id=request_id,
            category=CATEGORY_UNAVAILABLE,
            status_code=504
        )


class LineTooLongError(TransportError):
    """Pending event line outgrew the decoder's buffer bound."""

    def __init__(self, limit: int, provider: str = "", request_id: str = ""):
        super().__init__(
            f"Upstream event line exceeded {limit} bytes without a line break",
            provider=provider,
            request_id=request_id,
        )
        self.error.details = {"max_line_bytes": limit}
