"""
chatrelay Core Module

Normalized data models and the relay error taxonomy.
"""

from .models import (
    # Enums
    ProviderId,
    Role,
    ErrorCategory,
    OutcomeKind,

    # Request / stream units
    Turn,
    GenerationRequest,
    Fragment,
    RelayOutcome,
)

from .errors import (
    ErrorDetails,
    RelayException,
    ClientInputError,
    ConfigurationError,
    InvalidSessionError,
    UpstreamRejection,
    TransportError,
    RelayTimeoutError,
    LineTooLongError,
)

__all__ = [
    # Enums
    "ProviderId",
    "Role",
    "ErrorCategory",
    "OutcomeKind",

    # Request / stream units
    "Turn",
    "GenerationRequest",
    "Fragment",
    "RelayOutcome",

    # Errors
    "ErrorDetails",
    "RelayException",
    "ClientInputError",
    "ConfigurationError",
    "InvalidSessionError",
    "UpstreamRejection",
    "TransportError",
    "RelayTimeoutError",
    "LineTooLongError",
]
