"""
chatrelay - Pytest Configuration

Configures:
- Integration test markers (skip by default)
- Scripted upstream streams served through httpx.MockTransport
- Relay configuration and isolated metrics for unit tests
"""

import asyncio
import json
import logging
import os
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx
import pytest
import pytest_asyncio
from prometheus_client import CollectorRegistry

from chatrelay.config import RelayConfig
from chatrelay.observability.metrics import RelayMetrics


# ============================================================
# Environment Configuration
# ============================================================

def _is_truthy(value: Optional[str]) -> bool:
    """Check if environment variable is truthy."""
    if value is None:
        return False
    return value.lower() in ("1", "true", "yes", "on")


RUN_INTEGRATION = _is_truthy(os.getenv("RUN_INTEGRATION"))


# ============================================================
# Pytest Markers
# ============================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires RUN_INTEGRATION=1)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless RUN_INTEGRATION=1."""
    skip_integration = pytest.mark.skip(
        reason="Integration test - set RUN_INTEGRATION=1 to run"
    )
    for item in items:
        if "integration" in item.keywords and not RUN_INTEGRATION:
            item.add_marker(skip_integration)


# ============================================================
# Upstream payload builders
# ============================================================

def gemini_payload(text: str) -> Dict[str, Any]:
    """One Gemini streaming event carrying `text`."""
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def openai_payload(text: Optional[str]) -> Dict[str, Any]:
    """One OpenAI chat.completion.chunk carrying `text` (None for metadata)."""
    delta = {} if text is None else {"content": text}
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion.chunk",
        "choices": [{"index": 0, "delta": delta, "finish_reason": None}],
    }


def sse_line(payload: Any) -> bytes:
    """Encode one upstream `data:` event with its blank separator."""
    body = payload if isinstance(payload, str) else json.dumps(payload)
    return f"data: {body}\n\n".encode("utf-8")


def parse_sse(body: str) -> List[Any]:
    """Decode a downstream SSE body into event payloads ("[DONE]" kept as a string)."""
    events = []
    for block in body.split("\n\n"):
        if not block.startswith("data: "):
            continue
        data = block[len("data: "):]
        events.append(data if data == "[DONE]" else json.loads(data))
    return events


# ============================================================
# Scripted upstream
# ============================================================

class ChunkedStream(httpx.AsyncByteStream):
    """
    Upstream body delivered as an exact sequence of chunks.

    Optionally raises `error` after the last chunk, or hangs forever
    (`hang=True`) so tests can exercise timeouts and cancellation.
    """

    def __init__(
        self,
        chunks: Iterable[bytes],
        error: Optional[Exception] = None,
        hang: bool = False,
        delay: float = 0.0,
    ):
        self.chunks = list(chunks)
        self.error = error
        self.hang = hang
        self.delay = delay
        self.yielded = 0
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            if self.delay:
                await asyncio.sleep(self.delay)
            self.yielded += 1
            yield chunk
        if self.error is not None:
            raise self.error
        if self.hang:
            await asyncio.sleep(3600)

    async def aclose(self) -> None:
        self.closed = True


class ScriptedUpstream:
    """
    MockTransport handler that records requests and answers each one
    with the configured response factory.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.streams: List[ChunkedStream] = []
        self._respond: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, stream=ChunkedStream([]))
        )

    def stream(self, chunks: Iterable[bytes], **kwargs) -> ChunkedStream:
        """Answer with 200 and a scripted chunk stream."""
        stream = ChunkedStream(chunks, **kwargs)
        self.streams.append(stream)
        self._respond = lambda request: httpx.Response(
            200, headers={"Content-Type": "text/event-stream"}, stream=stream
        )
        return stream

    def respond(self, status_code: int, body: Any) -> None:
        """Answer with a complete JSON (or raw text) body."""
        if isinstance(body, (dict, list)):
            self._respond = lambda request: httpx.Response(status_code, json=body)
        else:
            self._respond = lambda request: httpx.Response(status_code, text=body)

    def json(self, body: Dict[str, Any], status_code: int = 200) -> None:
        """Answer with a plain JSON document."""
        self._respond = lambda request: httpx.Response(status_code, json=body)

    def fail(self, error: Exception) -> None:
        """Raise a transport error instead of answering."""
        def raise_error(request):
            raise error
        self._respond = raise_error

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._respond(request)

    @property
    def last_request(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Dict[str, Any]:
        return json.loads(self.last_request.content)


@pytest.fixture
def upstream() -> ScriptedUpstream:
    """Scripted upstream provider."""
    return ScriptedUpstream()


@pytest_asyncio.fixture
async def http_client(upstream):
    """Async client whose transport is the scripted upstream."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
        yield client


# ============================================================
# Configuration and metrics
# ============================================================

@pytest.fixture
def relay_config() -> RelayConfig:
    """Configuration with both providers and the login configured."""
    return RelayConfig(
        gemini_api_key="gemini-test-key",
        openai_api_key="openai-test-key",
        session_secret="test-signing-secret",
        admin_username="admin",
        admin_password="correct-horse",
        connect_timeout=1.0,
        first_byte_timeout=2.0,
        session_timeout=5.0,
    )


@pytest.fixture
def metrics() -> RelayMetrics:
    """Metrics on a private registry."""
    return RelayMetrics(registry=CollectorRegistry())


# ============================================================
# Logging Configuration
# ============================================================

@pytest.fixture(autouse=True)
def configure_test_logging():
    """Configure logging for tests."""
    logging.basicConfig(
        level=logging.DEBUG,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    yield
