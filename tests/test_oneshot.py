"""
chatrelay - One-shot Completion Tests
"""

from dataclasses import replace

import httpx
import pytest

from chatrelay.core.errors import (
    ClientInputError,
    ConfigurationError,
    TransportError,
    UpstreamRejection,
)
from chatrelay.core.models import GenerationRequest, ProviderId
from chatrelay.relay.oneshot import complete


def _request(provider: ProviderId, text: str = "Hi") -> GenerationRequest:
    return GenerationRequest(provider=provider, new_user_text=text, system_instruction="Be brief.")


class TestComplete:
    """Non-streaming generation."""

    @pytest.mark.asyncio
    async def test_gemini_text(self, upstream, http_client, relay_config):
        upstream.json({"candidates": [{"content": {"parts": [{"text": "Hello there"}]}}]})

        text = await complete(_request(ProviderId.GEMINI), relay_config, http_client)

        assert text == "Hello there"
        assert upstream.last_request.url.path.endswith(":generateContent")
        assert "alt" not in upstream.last_request.url.params

    @pytest.mark.asyncio
    async def test_openai_text(self, upstream, http_client, relay_config):
        upstream.json({"choices": [{"message": {"role": "assistant", "content": "Hi!"}}]})

        text = await complete(_request(ProviderId.OPENAI), relay_config, http_client)

        assert text == "Hi!"
        body = upstream.last_json()
        assert "stream" not in body
        assert body["messages"][0] == {"role": "system", "content": "Be brief."}

    @pytest.mark.asyncio
    async def test_missing_text_is_empty(self, upstream, http_client, relay_config):
        upstream.json({"candidates": [{"finishReason": "SAFETY"}]})

        assert await complete(_request(ProviderId.GEMINI), relay_config, http_client) == ""


class TestCompleteErrors:
    """Failures raise the relay error taxonomy."""

    @pytest.mark.asyncio
    async def test_rejection_classified(self, upstream, http_client, relay_config):
        upstream.respond(429, {"error": {"message": "insufficient_quota"}})

        with pytest.raises(UpstreamRejection) as exc_info:
            await complete(_request(ProviderId.OPENAI), relay_config, http_client)

        assert exc_info.value.category == "quota_exhausted"

    @pytest.mark.asyncio
    async def test_non_json_success(self, upstream, http_client, relay_config):
        upstream.respond(200, "not json")

        with pytest.raises(UpstreamRejection) as exc_info:
            await complete(_request(ProviderId.GEMINI), relay_config, http_client)

        assert exc_info.value.category == "malformed"

    @pytest.mark.asyncio
    async def test_missing_credential(self, upstream, http_client, relay_config):
        config = replace(relay_config, gemini_api_key=None)

        with pytest.raises(ConfigurationError):
            await complete(_request(ProviderId.GEMINI), config, http_client)

        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_invalid_request(self, upstream, http_client, relay_config):
        with pytest.raises(ClientInputError):
            await complete(_request(ProviderId.GEMINI, text=""), relay_config, http_client)

    @pytest.mark.asyncio
    async def test_transport_error(self, upstream, http_client, relay_config):
        upstream.fail(httpx.ConnectError("connection refused"))

        with pytest.raises(TransportError) as exc_info:
            await complete(_request(ProviderId.OPENAI), relay_config, http_client)

        assert exc_info.value.error.category == "transport"
