"""
chatrelay - Relay Session

Owns one end-to-end relay: validate -> select adapter -> open upstream
stream -> decode + extract in a loop -> forward each fragment at once ->
close deterministically.

State machine:
    idle -> opening -> streaming -> closing -> completed
                  \\           \\
                   +-----------+--> failed
    any state -> cancelled (client went away; no terminal event)

Guarantees:
- Fragments are yielded in exactly the order they were decoded.
- Exactly one terminal event (done or error) ends a non-cancelled
  session, and nothing is yielded after it.
- The upstream response is closed on every exit path.
"""

import asyncio
import uuid
from enum import Enum
from typing import AsyncIterator, Awaitable, Callable, Optional

import httpx

from ..adapters import get_adapter
from ..adapters.base import ProviderAdapter
from ..config import CREDENTIAL_ENV_VARS, RelayConfig
from ..core.classifier import rejection_from_response
from ..core.errors import (
    ConfigurationError,
    RelayException,
    RelayTimeoutError,
    TransportError,
)
from ..core.models import GenerationRequest, RelayOutcome
from ..observability.logging import LogContext, get_logger
from ..observability.metrics import RelayMetrics, get_metrics
from ..streaming.decoder import FrameDecoder
from ..streaming.events import RelayEvent
from ..streaming.extractor import extract

logger = get_logger(__name__)

DisconnectCheck = Callable[[], Awaitable[bool]]


class SessionState(str, Enum):
    """Relay session lifecycle states."""
    IDLE = "idle"
    OPENING = "opening"
    STREAMING = "streaming"
    CLOSING = "closing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class RelaySession:
    """
    One relay from a GenerationRequest to a stream of RelayEvents.

    Usage:
        session = RelaySession(request, config, client)
        async for event in session.events():
            await send(event.to_sse())

    Closing the `events()` generator early (client disconnect) cancels the
    session: the upstream connection is closed and no terminal event is
    produced. `is_disconnected` is an optional explicit signal checked
    before every downstream write.
    """

    def __init__(
        self,
        request: GenerationRequest,
        config: RelayConfig,
        client: httpx.AsyncClient,
        request_id: Optional[str] = None,
        is_disconnected: Optional[DisconnectCheck] = None,
        metrics: Optional[RelayMetrics] = None,
    ):
        self.request = request
        self.config = config
        self.client = client
        self.request_id = request_id or f"req_{uuid.uuid4().hex[:24]}"
        self.metrics = metrics or get_metrics()
        self._is_disconnected = is_disconnected

        self.state = SessionState.IDLE
        self.outcome: Optional[RelayOutcome] = None
        self.fragments_sent = 0

        # Per-session upstream state, dropped on release
        self._adapter: Optional[ProviderAdapter] = None
        self._decoder: Optional[FrameDecoder] = None
        self._response: Optional[httpx.Response] = None
        self._chunks: Optional[AsyncIterator[bytes]] = None
        self._first_chunk_read = False

        self._started_at = 0.0
        self._deadline = 0.0
        # Covers connect and the first body chunk together
        self._first_byte_deadline = 0.0

    @property
    def provider(self) -> str:
        return getattr(self.request.provider, "value", str(self.request.provider))

    # ============================================================
    # Main loop
    # ============================================================

    async def events(self) -> AsyncIterator[RelayEvent]:
        """Run the session, yielding fragment events then one terminal event."""
        if self.state != SessionState.IDLE:
            raise RuntimeError("RelaySession.events() can only run once")

        loop = asyncio.get_running_loop()
        self._started_at = loop.time()
        self._deadline = self._started_at + self.config.session_timeout
        self._first_byte_deadline = self._started_at + self.config.first_byte_timeout

        LogContext.set_current(
            (LogContext.get_current() or LogContext()).merged(request_id=self.request_id, provider=self.provider)
        )
        self.metrics.session_started(self.provider)

        try:
            try:
                await self._open()
                self.state = SessionState.STREAMING

                while True:
                    chunk = await self._read_chunk()
                    if chunk is None:
                        break

                    for line in self._decoder.feed(chunk):
                        fragment = extract(line, self._adapter, on_anomaly=self._record_anomaly)
                        if fragment is None:
                            continue
                        if await self._client_gone():
                            self._mark_cancelled()
                            return
                        self._record_fragment()
                        yield RelayEvent.fragment(fragment.text)

                self.state = SessionState.CLOSING
                self._decoder.flush()
                outcome = RelayOutcome.completed()

            except RelayException as exc:
                exc.error.request_id = exc.error.request_id or self.request_id
                outcome = RelayOutcome.from_error(exc)

            except Exception as exc:
                logger.exception("Unexpected relay failure", state=self.state.value)
                outcome = RelayOutcome.from_error(
                    TransportError(
                        str(exc) or exc.__class__.__name__,
                        provider=self.provider,
                        request_id=self.request_id,
                    )
                )

            if await self._client_gone():
                outcome = RelayOutcome.cancelled()

            self._finish(outcome)
            if outcome.requires_terminal_event:
                yield RelayEvent.terminal(outcome)

        finally:
            if self.outcome is None:
                # Generator closed or task cancelled mid-stream
                self._mark_cancelled()
            await self._release()

    # ============================================================
    # Opening
    # ============================================================

    async def _open(self) -> None:
        """Idle -> Opening -> (Streaming | raise)."""
        self.request.validate()
        self._adapter = get_adapter(self.request.provider)
        self.state = SessionState.OPENING

        credential = self.config.resolve_credential(self.request.provider)
        if not credential:
            env_name = CREDENTIAL_ENV_VARS.get(self.request.provider, "Provider API key")
            raise ConfigurationError(
                f"{env_name} not configured.",
                provider=self.provider,
                request_id=self.request_id,
            )

        settings = self.config.generation_settings(self.request.provider)
        call = self._adapter.build_stream_call(self.request, settings, credential)
        upstream_request = self.client.build_request(
            call.method,
            call.url,
            headers=call.headers,
            json=call.json,
            timeout=httpx.Timeout(self.config.session_timeout, connect=self.config.connect_timeout),
        )

        self._decoder = FrameDecoder(self.config.max_line_bytes)

        logger.debug("Opening upstream stream", url=call.url.split("?")[0])
        self._response = await self._bounded(
            self.client.send(upstream_request, stream=True),
            "connect",
            first_byte=True,
        )

        if not self._response.is_success:
            body = await self._bounded(self._response.aread(), "error body read")
            rejection = rejection_from_response(
                self._adapter,
                self._response.status_code,
                body,
                request_id=self.request_id,
            )
            logger.warning(
                "Upstream rejected request",
                upstream_status=self._response.status_code,
                category=rejection.category,
            )
            raise rejection

        self._chunks = self._response.aiter_bytes()

    # ============================================================
    # Reading
    # ============================================================

    async def _next_chunk(self) -> Optional[bytes]:
        try:
            return await self._chunks.__anext__()
        except StopAsyncIteration:
            return None

    async def _read_chunk(self) -> Optional[bytes]:
        """Next raw chunk, or None at end of stream."""
        chunk = await self._bounded(self._next_chunk(), "read", first_byte=not self._first_chunk_read)
        self._first_chunk_read = True
        return chunk

    async def _bounded(self, awaitable: Awaitable, stage: str, first_byte: bool = False):
        """
        Await an upstream operation within the session deadline, and
        within the first-byte deadline until the first chunk arrives.

        Maps timeouts to RelayTimeoutError and any other httpx failure
        to TransportError.
        """
        deadline = min(self._deadline, self._first_byte_deadline) if first_byte else self._deadline
        timeout = deadline - asyncio.get_running_loop().time()

        try:
            return await asyncio.wait_for(awaitable, max(timeout, 0))
        except asyncio.TimeoutError:
            raise RelayTimeoutError(
                f"Upstream {stage} timed out",
                provider=self.provider,
                request_id=self.request_id,
            ) from None
        except httpx.TimeoutException as exc:
            raise RelayTimeoutError(
                f"Upstream {stage} timed out: {exc}",
                provider=self.provider,
                request_id=self.request_id,
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(
                f"Upstream {stage} failed: {exc or exc.__class__.__name__}",
                provider=self.provider,
                request_id=self.request_id,
            ) from exc

    # ============================================================
    # Bookkeeping
    # ============================================================

    async def _client_gone(self) -> bool:
        if self._is_disconnected is None:
            return False
        return await self._is_disconnected()

    def _record_fragment(self) -> None:
        if self.fragments_sent == 0:
            elapsed = asyncio.get_running_loop().time() - self._started_at
            self.metrics.record_first_fragment(self.provider, elapsed)
        self.fragments_sent += 1
        self.metrics.record_fragment(self.provider)

    def _record_anomaly(self, payload: str) -> None:
        self.metrics.record_decode_anomaly(self.provider)

    def _finish(self, outcome: RelayOutcome) -> None:
        if not outcome.requires_terminal_event:
            self._mark_cancelled()
            return

        self.outcome = outcome
        if outcome.is_success:
            self.state = SessionState.COMPLETED
            logger.info("Relay session completed", fragments=self.fragments_sent)
        else:
            self.state = SessionState.FAILED
            logger.warning(
                "Relay session failed",
                outcome=outcome.kind.value,
                category=outcome.category,
                error_message=outcome.message,
                fragments=self.fragments_sent,
            )

    def _mark_cancelled(self) -> None:
        self.outcome = RelayOutcome.cancelled()
        self.state = SessionState.CANCELLED
        logger.info("Client disconnected, relay cancelled", fragments=self.fragments_sent)

    async def _release(self) -> None:
        """Close the upstream side and drop per-session state. Runs once."""
        response, self._response = self._response, None
        chunks, self._chunks = self._chunks, None
        self._decoder = None

        if chunks is not None and hasattr(chunks, "aclose"):
            try:
                await chunks.aclose()
            except Exception as exc:
                logger.debug("Upstream iterator close failed", error=str(exc))

        if response is not None:
            try:
                await response.aclose()
            except Exception as exc:
                logger.warning("Upstream close failed", error=str(exc))

        elapsed = asyncio.get_running_loop().time() - self._started_at
        self.metrics.session_finished(
            self.provider,
            outcome=self.outcome.kind.value,
            category=self.outcome.category or "",
            duration_seconds=elapsed,
        )
