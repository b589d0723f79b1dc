"""
chatrelay - Core Model Tests

Verifies request parsing from the client wire format, outcomes and the
downstream event encoding.
"""

import json

import pytest

from chatrelay.core.errors import (
    ClientInputError,
    ConfigurationError,
    RelayTimeoutError,
    UpstreamRejection,
)
from chatrelay.core.models import (
    GenerationRequest,
    OutcomeKind,
    ProviderId,
    RelayOutcome,
    Role,
)
from chatrelay.streaming.events import RelayEvent, RelayEventType


class TestGenerationRequestFromDict:
    """Client payload parsing."""

    def test_full_payload(self):
        request = GenerationRequest.from_dict({
            "provider": "Gemini",
            "systemPrompt": "Be brief.",
            "history": [
                {"role": "user", "content": "Hi"},
                {"role": "assistant", "content": "Hello!"},
            ],
            "userMessage": "Next?",
        })

        assert request.provider == ProviderId.GEMINI
        assert request.system_instruction == "Be brief."
        assert [t.role for t in request.prior_turns] == [Role.USER, Role.ASSISTANT]
        assert request.new_user_text == "Next?"

    def test_minimal_payload(self):
        request = GenerationRequest.from_dict({"provider": "openai", "userMessage": "Hi"})
        assert request.prior_turns == ()
        assert request.system_instruction is None

    @pytest.mark.parametrize("message", [None, "", "   "])
    def test_missing_user_message(self, message):
        with pytest.raises(ClientInputError) as exc_info:
            GenerationRequest.from_dict({"provider": "openai", "userMessage": message})
        assert exc_info.value.error.param == "userMessage"
        assert exc_info.value.status_code == 400

    @pytest.mark.parametrize("provider", [None, "", "claude"])
    def test_bad_provider(self, provider):
        with pytest.raises(ClientInputError) as exc_info:
            GenerationRequest.from_dict({"provider": provider, "userMessage": "Hi"})
        assert exc_info.value.error.param == "provider"

    def test_unknown_history_role(self):
        with pytest.raises(ClientInputError) as exc_info:
            GenerationRequest.from_dict({
                "provider": "gemini",
                "userMessage": "Hi",
                "history": [{"role": "system", "content": "x"}],
            })
        assert exc_info.value.error.param == "history[0].role"

    def test_non_string_history_content(self):
        with pytest.raises(ClientInputError) as exc_info:
            GenerationRequest.from_dict({
                "provider": "gemini",
                "userMessage": "Hi",
                "history": [{"role": "user", "content": 3}],
            })
        assert exc_info.value.error.param == "history[0].content"

    def test_validate_direct_construction(self):
        request = GenerationRequest(provider=ProviderId.OPENAI, new_user_text=" ")
        with pytest.raises(ClientInputError):
            request.validate()


class TestRelayOutcome:
    """Outcome construction from errors."""

    def test_completed(self):
        outcome = RelayOutcome.completed()
        assert outcome.is_success
        assert outcome.requires_terminal_event

    def test_cancelled_needs_no_terminal_event(self):
        assert not RelayOutcome.cancelled().requires_terminal_event

    def test_from_rejection(self):
        outcome = RelayOutcome.from_error(
            UpstreamRejection("rate_limited", "slow down", "openai", 429)
        )
        assert outcome.kind == OutcomeKind.UPSTREAM_ERROR
        assert outcome.category == "rate_limited"
        assert outcome.message == "slow down"

    def test_from_timeout(self):
        outcome = RelayOutcome.from_error(RelayTimeoutError("too slow"))
        assert outcome.kind == OutcomeKind.TRANSPORT_ERROR
        assert outcome.category == "unavailable"

    def test_from_configuration_error(self):
        outcome = RelayOutcome.from_error(ConfigurationError("GEMINI_API_KEY not configured."))
        assert outcome.kind == OutcomeKind.CONFIGURATION_ERROR
        assert outcome.category == "configuration"


class TestRelayEvent:
    """Downstream SSE encoding."""

    def test_fragment_sse(self):
        sse = RelayEvent.fragment("Hé\n").to_sse()
        assert sse.startswith("data: ")
        assert sse.endswith("\n\n")
        assert json.loads(sse[6:-2]) == {"fragment": "Hé\n"}

    def test_done_sse(self):
        assert RelayEvent.done().to_sse() == "data: [DONE]\n\n"

    def test_error_sse(self):
        sse = RelayEvent.error("quota_exhausted", "Quota exceeded").to_sse()
        assert json.loads(sse[6:-2]) == {
            "error": {"category": "quota_exhausted", "message": "Quota exceeded"}
        }

    def test_terminal_from_outcome(self):
        assert RelayEvent.terminal(RelayOutcome.completed()).type == RelayEventType.DONE
        failed = RelayOutcome.from_error(UpstreamRejection("auth_failure", "bad key", "gemini", 401))
        event = RelayEvent.terminal(failed)
        assert event.type == RelayEventType.ERROR
        assert event.category == "auth_failure"
        assert event.is_terminal

    def test_fragment_not_terminal(self):
        assert not RelayEvent.fragment("x").is_terminal
