"""
chatrelay - Error Classifier Tests

Classification is a pure function of (adapter, status, body).
"""

import json
from dataclasses import replace

import pytest

from chatrelay.adapters import GEMINI_ADAPTER, OPENAI_ADAPTER
from chatrelay.core.classifier import classify, describe, rejection_from_response
from chatrelay.core.errors import UpstreamRejection
from chatrelay.core.models import ErrorCategory


def _error_body(message: str, **extra) -> str:
    return json.dumps({"error": {"message": message, **extra}})


class TestClassify:
    """Rule order and categories."""

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_failure(self, status):
        assert classify(OPENAI_ADAPTER, status, _error_body("bad key")) == ErrorCategory.AUTH_FAILURE

    def test_auth_wins_over_quota_wording(self):
        body = _error_body("quota exceeded")
        assert classify(GEMINI_ADAPTER, 403, body) == ErrorCategory.AUTH_FAILURE

    def test_429_with_quota_marker(self):
        body = _error_body("You exceeded your current quota", type="insufficient_quota")
        assert classify(OPENAI_ADAPTER, 429, body) == ErrorCategory.QUOTA_EXHAUSTED

    def test_429_gemini_resource_exhausted(self):
        body = _error_body("Too many requests", status="RESOURCE_EXHAUSTED")
        assert classify(GEMINI_ADAPTER, 429, body) == ErrorCategory.QUOTA_EXHAUSTED

    def test_429_marker_case_insensitive(self):
        assert classify(GEMINI_ADAPTER, 429, _error_body("QUOTA hit")) == ErrorCategory.QUOTA_EXHAUSTED

    def test_429_without_marker(self):
        body = _error_body("Rate limit reached for requests")
        assert classify(OPENAI_ADAPTER, 429, body) == ErrorCategory.RATE_LIMITED

    def test_quota_wording_on_other_status_is_not_quota(self):
        assert classify(OPENAI_ADAPTER, 400, _error_body("quota")) == ErrorCategory.UNKNOWN

    @pytest.mark.parametrize("status", [500, 502, 503, 504])
    def test_server_errors(self, status):
        assert classify(GEMINI_ADAPTER, status, "<html>oops</html>") == ErrorCategory.UNAVAILABLE

    def test_unparseable_body_is_malformed(self):
        assert classify(OPENAI_ADAPTER, 400, "<html>Bad Request</html>") == ErrorCategory.MALFORMED

    def test_wrong_shape_is_malformed(self):
        assert classify(OPENAI_ADAPTER, 404, json.dumps({"detail": "nope"})) == ErrorCategory.MALFORMED

    def test_parseable_error_is_unknown(self):
        assert classify(GEMINI_ADAPTER, 400, _error_body("Invalid argument")) == ErrorCategory.UNKNOWN

    def test_bytes_body(self):
        body = _error_body("quota").encode("utf-8")
        assert classify(GEMINI_ADAPTER, 429, body) == ErrorCategory.QUOTA_EXHAUSTED

    def test_deterministic(self):
        body = _error_body("slow down")
        results = {classify(OPENAI_ADAPTER, 429, body) for _ in range(5)}
        assert results == {ErrorCategory.RATE_LIMITED}


class TestAdapterErrorShape:
    """Error message location comes from the adapter record."""

    @pytest.fixture
    def detail_adapter(self):
        return replace(OPENAI_ADAPTER, display_name="Detail", error_message_path=("detail",))

    def test_custom_shape_is_not_malformed(self, detail_adapter):
        body = json.dumps({"detail": "Model not found"})
        assert classify(detail_adapter, 404, body) == ErrorCategory.UNKNOWN
        assert classify(OPENAI_ADAPTER, 404, body) == ErrorCategory.MALFORMED

    def test_custom_shape_message(self, detail_adapter):
        body = json.dumps({"detail": "Model not found"})
        assert describe(detail_adapter, 404, body) == "Model not found"

    def test_default_shape_ignored_by_custom_adapter(self, detail_adapter):
        assert classify(detail_adapter, 400, _error_body("Invalid argument")) == ErrorCategory.MALFORMED


class TestDescribe:
    """Human-readable messages."""

    def test_vendor_message_verbatim(self):
        assert describe(OPENAI_ADAPTER, 401, _error_body("Incorrect API key provided")) == (
            "Incorrect API key provided"
        )

    def test_generic_message_when_unparseable(self):
        assert describe(GEMINI_ADAPTER, 502, "") == "Gemini error HTTP 502"
        assert describe(OPENAI_ADAPTER, 500, "boom") == "OpenAI error HTTP 500"


class TestRejectionFromResponse:
    """Combined exception."""

    def test_fields(self):
        rejection = rejection_from_response(
            GEMINI_ADAPTER, 429, _error_body("Quota exceeded"), request_id="req_1"
        )
        assert isinstance(rejection, UpstreamRejection)
        assert rejection.category == "quota_exhausted"
        assert rejection.status_code == 502
        assert rejection.error.http_status == 429
        assert rejection.error.provider == "gemini"
        assert rejection.error.to_dict()["error"]["upstream_status"] == 429
        assert rejection.error.request_id == "req_1"
