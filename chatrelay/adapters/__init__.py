"""
chatrelay Adapters Module

Provider-specific mappings between the normalized GenerationRequest and
each provider's native wire format.
"""

from typing import Dict

from .base import (
    GenerationSettings,
    ProviderAdapter,
    UpstreamCall,
    dig,
    parse_error_message,
)
from .gemini_adapter import GEMINI_ADAPTER
from .openai_adapter import OPENAI_ADAPTER
from ..core.errors import ClientInputError
from ..core.models import ProviderId

__all__ = [
    "ADAPTERS",
    "GenerationSettings",
    "ProviderAdapter",
    "UpstreamCall",
    "GEMINI_ADAPTER",
    "OPENAI_ADAPTER",
    "dig",
    "get_adapter",
    "parse_error_message",
]


ADAPTERS: Dict[ProviderId, ProviderAdapter] = {
    ProviderId.GEMINI: GEMINI_ADAPTER,
    ProviderId.OPENAI: OPENAI_ADAPTER,
}


def get_adapter(provider: ProviderId) -> ProviderAdapter:
    """
    Look up the adapter for a provider.

    Raises:
        ClientInputError: If no adapter is registered for the provider
    """
    adapter = ADAPTERS.get(provider)
    if adapter is None:
        raise ClientInputError(f"Unsupported provider: {provider}", param="provider")
    return adapter
