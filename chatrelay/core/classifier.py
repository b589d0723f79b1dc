"""
chatrelay - Upstream Error Classifier

Maps a non-success upstream response (status + body) to a stable,
provider-independent ErrorCategory. Runs on the opening response only,
before any stream decoding starts.

Rules (first match wins):
    401/403          -> auth_failure
    429              -> rate_limited (quota_exhausted if a quota marker is present)
    >= 500           -> unavailable
    unparseable body -> malformed
    otherwise        -> unknown
"""

from typing import Union

from .errors import UpstreamRejection
from .models import ErrorCategory
from ..adapters.base import ProviderAdapter, parse_error_message


Body = Union[str, bytes]


def _body_text(raw_body: Body) -> str:
    if isinstance(raw_body, bytes):
        return raw_body.decode("utf-8", errors="replace")
    return raw_body or ""


def _has_quota_marker(adapter: ProviderAdapter, body: str) -> bool:
    # Best-effort: vendors change their wording without notice.
    lowered = body.lower()
    return any(marker.lower() in lowered for marker in adapter.quota_markers)


def classify(adapter: ProviderAdapter, http_status: int, raw_body: Body) -> ErrorCategory:
    """Classify an upstream rejection. Pure: same input, same category."""
    body = _body_text(raw_body)

    if http_status in (401, 403):
        return ErrorCategory.AUTH_FAILURE

    if http_status == 429:
        if _has_quota_marker(adapter, body):
            return ErrorCategory.QUOTA_EXHAUSTED
        return ErrorCategory.RATE_LIMITED

    if http_status >= 500:
        return ErrorCategory.UNAVAILABLE

    if parse_error_message(body, adapter.error_message_path) is None:
        return ErrorCategory.MALFORMED

    return ErrorCategory.UNKNOWN


def describe(adapter: ProviderAdapter, http_status: int, raw_body: Body) -> str:
    """Vendor message verbatim when available, else a generic HTTP message."""
    message = parse_error_message(_body_text(raw_body), adapter.error_message_path)
    if message:
        return message
    return f"{adapter.display_name} error HTTP {http_status}"


def rejection_from_response(
    adapter: ProviderAdapter,
    http_status: int,
    raw_body: Body,
    request_id: str = ""
) -> UpstreamRejection:
    """Build the UpstreamRejection for a failed opening response."""
    return UpstreamRejection(
        category=classify(adapter, http_status, raw_body).value,
        message=describe(adapter, http_status, raw_body),
        provider=adapter.kind.value,
        http_status=http_status,
        request_id=request_id,
    )
