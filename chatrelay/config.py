"""
chatrelay - Configuration

Read-only configuration built once at process start and passed into
every relay session. Nothing in the relay reads the environment directly.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .adapters import GenerationSettings
from .adapters import gemini_adapter, openai_adapter
from .core.models import ProviderId


# Environment variable holding each provider credential
CREDENTIAL_ENV_VARS = {
    ProviderId.GEMINI: "GEMINI_API_KEY",
    ProviderId.OPENAI: "OPENAI_API_KEY",
}


def _get_str(env: Mapping[str, str], key: str) -> Optional[str]:
    value = env.get(key, "")
    value = value.strip() if value else ""
    return value or None


def _get_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{key} must be positive, got {raw!r}")
    return value


def _get_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{key} must be positive, got {raw!r}")
    return value


@dataclass(frozen=True)
class RelayConfig:
    """Process-wide relay settings. Credentials are never mutated."""

    # Provider credentials
    gemini_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None

    # Session token signing and the single admin login
    session_secret: Optional[str] = None
    admin_username: Optional[str] = None
    admin_password: Optional[str] = None
    session_ttl_seconds: int = 24 * 60 * 60

    # Upstream endpoints and generation settings
    gemini_base_url: str = gemini_adapter.DEFAULT_BASE_URL
    gemini_model: str = gemini_adapter.DEFAULT_MODEL
    openai_base_url: str = openai_adapter.DEFAULT_BASE_URL
    openai_model: str = openai_adapter.DEFAULT_MODEL
    max_output_tokens: int = 2000
    temperature: float = 0.7

    # Session bounds (seconds / bytes)
    connect_timeout: float = 10.0
    first_byte_timeout: float = 30.0
    session_timeout: float = 120.0
    max_line_bytes: int = 1024 * 1024

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "RelayConfig":
        """
        Build configuration from environment variables.

        Raises:
            ValueError: If a numeric setting is malformed or not positive
        """
        env = os.environ if env is None else env
        return cls(
            gemini_api_key=_get_str(env, "GEMINI_API_KEY"),
            openai_api_key=_get_str(env, "OPENAI_API_KEY"),
            session_secret=_get_str(env, "AGENT_API_KEY"),
            admin_username=_get_str(env, "ADMIN_USERNAME"),
            admin_password=_get_str(env, "ADMIN_PASSWORD"),
            session_ttl_seconds=_get_int(env, "SESSION_TTL_SECONDS", 24 * 60 * 60),
            gemini_base_url=_get_str(env, "GEMINI_BASE_URL") or gemini_adapter.DEFAULT_BASE_URL,
            gemini_model=_get_str(env, "GEMINI_MODEL") or gemini_adapter.DEFAULT_MODEL,
            openai_base_url=_get_str(env, "OPENAI_BASE_URL") or openai_adapter.DEFAULT_BASE_URL,
            openai_model=_get_str(env, "OPENAI_MODEL") or openai_adapter.DEFAULT_MODEL,
            max_output_tokens=_get_int(env, "RELAY_MAX_OUTPUT_TOKENS", 2000),
            temperature=_get_float(env, "RELAY_TEMPERATURE", 0.7),
            connect_timeout=_get_float(env, "RELAY_CONNECT_TIMEOUT", 10.0),
            first_byte_timeout=_get_float(env, "RELAY_FIRST_BYTE_TIMEOUT", 30.0),
            session_timeout=_get_float(env, "RELAY_SESSION_TIMEOUT", 120.0),
            max_line_bytes=_get_int(env, "RELAY_MAX_LINE_BYTES", 1024 * 1024),
        )

    def resolve_credential(self, provider: ProviderId) -> Optional[str]:
        """API key for a provider, or None when not configured."""
        keys = {
            ProviderId.GEMINI: self.gemini_api_key,
            ProviderId.OPENAI: self.openai_api_key,
        }
        return keys.get(provider) or None

    def generation_settings(self, provider: ProviderId) -> GenerationSettings:
        """Endpoint and model settings for a provider."""
        if provider == ProviderId.GEMINI:
            base_url, model = self.gemini_base_url, self.gemini_model
        else:
            base_url, model = self.openai_base_url, self.openai_model
        return GenerationSettings(
            base_url=base_url,
            model=model,
            max_output_tokens=self.max_output_tokens,
            temperature=self.temperature,
        )

    def configured_providers(self):
        """Providers that have a credential."""
        return [p for p in ProviderId if self.resolve_credential(p)]
