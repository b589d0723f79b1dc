"""
chatrelay - Core Data Models

Normalized request, fragment and outcome types shared by every
provider adapter and the relay session.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .errors import ClientInputError, RelayException


# ============================================================
# Enums
# ============================================================

class ProviderId(str, Enum):
    """Supported upstream providers."""
    GEMINI = "gemini"    # Provider A - token-array SSE
    OPENAI = "openai"    # Provider B - delta-chat SSE

    @classmethod
    def parse(cls, value: Any) -> "ProviderId":
        """Resolve a wire value to a provider, rejecting anything unknown."""
        if not isinstance(value, str) or not value.strip():
            raise ClientInputError("provider is required", param="provider")
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ClientInputError(
                f"Invalid provider '{value}'. Use 'gemini' or 'openai'.",
                param="provider",
            ) from None


class Role(str, Enum):
    """Conversation roles accepted in prior turns."""
    USER = "user"
    ASSISTANT = "assistant"


class ErrorCategory(str, Enum):
    """Provider-independent classification of upstream rejections."""
    AUTH_FAILURE = "auth_failure"
    QUOTA_EXHAUSTED = "quota_exhausted"
    RATE_LIMITED = "rate_limited"
    MALFORMED = "malformed"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


class OutcomeKind(str, Enum):
    """Terminal state of a relay session."""
    COMPLETED = "completed"
    UPSTREAM_ERROR = "upstream_error"
    TRANSPORT_ERROR = "transport_error"
    CLIENT_INPUT_ERROR = "client_input_error"
    CONFIGURATION_ERROR = "configuration_error"
    CANCELLED = "cancelled"


# ============================================================
# Request
# ============================================================

@dataclass(frozen=True)
class Turn:
    """One prior conversation turn."""
    role: Role
    text: str


@dataclass(frozen=True)
class GenerationRequest:
    """
    Normalized request for one generated reply.

    Immutable once constructed. Use `from_dict` to build one from the
    client wire format; it raises ClientInputError for anything the relay
    cannot forward.
    """
    provider: ProviderId
    new_user_text: str
    system_instruction: Optional[str] = None
    prior_turns: Tuple[Turn, ...] = ()

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "GenerationRequest":
        """
        Build a request from the client payload.

        Wire fields:
            provider: "gemini" | "openai"
            systemPrompt: optional system instruction
            history: list of {"role": "user"|"assistant", "content": str}
            userMessage: the new user turn (required, non-empty)
        """
        if not isinstance(payload, dict):
            raise ClientInputError("Request body must be a JSON object")

        user_message = payload.get("userMessage")
        if not isinstance(user_message, str) or not user_message.strip():
            raise ClientInputError("userMessage is required", param="userMessage")

        provider = ProviderId.parse(payload.get("provider"))

        system_prompt = payload.get("systemPrompt")
        if system_prompt is not None and not isinstance(system_prompt, str):
            raise ClientInputError("systemPrompt must be a string", param="systemPrompt")

        history = payload.get("history") or []
        if not isinstance(history, list):
            raise ClientInputError("history must be a list", param="history")

        turns = []
        for index, item in enumerate(history):
            param = f"history[{index}]"
            if not isinstance(item, dict):
                raise ClientInputError("history entries must be objects", param=param)
            try:
                role = Role(item.get("role"))
            except ValueError:
                raise ClientInputError(
                    f"Unknown role '{item.get('role')}'", param=f"{param}.role"
                ) from None
            content = item.get("content")
            if not isinstance(content, str):
                raise ClientInputError("content must be a string", param=f"{param}.content")
            turns.append(Turn(role=role, text=content))

        return cls(
            provider=provider,
            new_user_text=user_message,
            system_instruction=system_prompt or None,
            prior_turns=tuple(turns),
        )

    def validate(self) -> None:
        """Re-check invariants for requests built without `from_dict`."""
        if not isinstance(self.provider, ProviderId):
            ProviderId.parse(self.provider)
        if not self.new_user_text or not self.new_user_text.strip():
            raise ClientInputError("userMessage is required", param="userMessage")


# ============================================================
# Stream units and outcomes
# ============================================================

@dataclass(frozen=True)
class Fragment:
    """A unit of generated text ready to forward."""
    text: str


@dataclass(frozen=True)
class RelayOutcome:
    """Exactly one per session; decides the terminal event."""
    kind: OutcomeKind
    category: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def completed(cls) -> "RelayOutcome":
        return cls(kind=OutcomeKind.COMPLETED)

    @classmethod
    def cancelled(cls) -> "RelayOutcome":
        return cls(kind=OutcomeKind.CANCELLED)

    @classmethod
    def from_error(cls, error: RelayException) -> "RelayOutcome":
        return cls(
            kind=OutcomeKind(error.outcome_kind),
            category=error.error.category,
            message=error.error.message,
        )

    @property
    def is_success(self) -> bool:
        return self.kind == OutcomeKind.COMPLETED

    @property
    def requires_terminal_event(self) -> bool:
        """A cancelled session has no client left to tell."""
        return self.kind != OutcomeKind.CANCELLED
