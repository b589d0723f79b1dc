"""
chatrelay - Structured JSON Logging

One JSON object per log line, with the relay session's correlation
fields (request_id, provider, subject) injected automatically.

Credentials travel through this process on every request (provider API
keys, session tokens), so redaction covers both field names and
credential-shaped substrings inside values.

Usage:
    from chatrelay.observability.logging import LogContext, get_logger

    logger = get_logger(__name__)

    with LogContext.bind(request_id="req_xyz", provider="gemini"):
        logger.info("Relay session completed", fragments=12)

Output:
    {"timestamp": "2025-01-15T10:30:00+00:00", "level": "INFO",
     "logger": "chatrelay.relay.session", "message": "Relay session completed",
     "request_id": "req_xyz", "provider": "gemini", "fragments": 12}
"""

import json
import logging
import os
import re
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, MutableMapping, Optional, Tuple, Union

_current_context: ContextVar[Optional["LogContext"]] = ContextVar("chatrelay_log_context", default=None)

REDACTED = "[REDACTED]"

# Attributes every LogRecord carries; anything else is a structured field
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

# Keyword arguments the stdlib logger itself understands
_LOGGER_KWARGS = ("exc_info", "stack_info", "stacklevel", "extra")


@dataclass(frozen=True)
class LogContext:
    """
    Correlation fields for the current relay session.

    Stored in a ContextVar, so each request task sees only its own
    session. Immutable: `bind` installs a derived copy and restores the
    previous context on exit.
    """
    request_id: str = ""
    provider: str = ""
    subject: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def get_current(cls) -> Optional["LogContext"]:
        return _current_context.get()

    @classmethod
    def set_current(cls, ctx: Optional["LogContext"]) -> None:
        """Install `ctx` for the rest of the current task."""
        _current_context.set(ctx)

    @classmethod
    def clear(cls) -> None:
        _current_context.set(None)

    @classmethod
    @contextmanager
    def bind(cls, **fields: Any) -> Iterator["LogContext"]:
        """Temporarily extend the current context with `fields`."""
        base = cls.get_current() or cls()
        token = _current_context.set(base.merged(**fields))
        try:
            yield _current_context.get()
        finally:
            _current_context.reset(token)

    def merged(self, **fields: Any) -> "LogContext":
        """Copy with known fields replaced and unknown ones added to `extra`."""
        known = {k: v for k, v in fields.items() if k in ("request_id", "provider", "subject")}
        extra = {**self.extra, **{k: v for k, v in fields.items() if k not in known}}
        return replace(self, extra=extra, **known)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            key: value
            for key, value in (
                ("request_id", self.request_id),
                ("provider", self.provider),
                ("subject", self.subject),
            )
            if value
        }
        result.update(self.extra)
        return result


# ============================================================
# Redaction
# ============================================================

SENSITIVE_FIELD_MARKERS = (
    "password", "secret", "token", "api_key", "apikey",
    "authorization", "credential",
)

# Bearer tokens, OpenAI-style keys, Google API keys
_SECRET_VALUE = re.compile(
    r"(Bearer\s+)[A-Za-z0-9._~+/=-]+|\bsk-[A-Za-z0-9_-]{8,}|\bAIza[0-9A-Za-z_-]{20,}"
)


def is_sensitive_field(name: str) -> bool:
    lowered = name.lower()
    return any(marker in lowered for marker in SENSITIVE_FIELD_MARKERS)


def scrub(text: str) -> str:
    """Mask credential-shaped substrings, keeping any `Bearer ` prefix."""
    return _SECRET_VALUE.sub(lambda m: (m.group(1) or "") + REDACTED, text)


# ============================================================
# Formatter
# ============================================================

class JSONFormatter(logging.Formatter):
    """Render a record, its structured fields and the session context as JSON."""

    def __init__(self, include_location: bool = False, redact_sensitive: bool = True):
        super().__init__()
        self.include_location = include_location
        self.redact_sensitive = redact_sensitive

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": scrub(message) if self.redact_sensitive else message,
        }
        if self.include_location:
            payload["location"] = f"{record.filename}:{record.lineno}"

        ctx = LogContext.get_current()
        if ctx is not None:
            payload.update(ctx.to_dict())

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS:
                continue
            payload[key] = self._clean(key, value)

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=False)

    def _clean(self, key: str, value: Any) -> Any:
        if not self.redact_sensitive:
            return value
        if is_sensitive_field(key):
            return REDACTED
        if isinstance(value, str):
            return scrub(value)
        return value


# ============================================================
# Logger
# ============================================================

class StructuredLogger(logging.LoggerAdapter):
    """
    Logger that accepts structured fields as keyword arguments.

        logger.warning("Upstream rejected request", upstream_status=429)
    """

    def __init__(self, logger: logging.Logger):
        super().__init__(logger, {})

    @property
    def name(self) -> str:
        return self.logger.name

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        fields = dict(kwargs.pop("extra", None) or {})
        for key in [k for k in kwargs if k not in _LOGGER_KWARGS]:
            fields[key] = kwargs.pop(key)
        kwargs["extra"] = fields
        return msg, kwargs


_configured = False


def setup_logging(
    level: Union[str, int] = "INFO",
    json_output: bool = True,
    include_location: bool = False,
    redact_sensitive: bool = True,
) -> None:
    """
    Install a single stdout handler on the root logger.

    Args:
        level: Log level name or number
        json_output: JSON lines (True) or the plain text format (False)
        include_location: Add filename:lineno to each line
        redact_sensitive: Mask credential fields and credential-shaped values
    """
    global _configured

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if json_output:
        handler.setFormatter(JSONFormatter(include_location, redact_sensitive))
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    # Request-level chatter from the HTTP stack
    for noisy in ("httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> StructuredLogger:
    """
    Structured logger for `name`.

    Falls back to LOG_LEVEL / LOG_FORMAT on first use when the
    application has not called setup_logging yet.
    """
    if not _configured:
        setup_logging(
            level=os.getenv("LOG_LEVEL", "INFO"),
            json_output=os.getenv("LOG_FORMAT", "json").lower() == "json",
        )
    return StructuredLogger(logging.getLogger(name))
