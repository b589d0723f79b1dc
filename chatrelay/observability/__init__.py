"""
chatrelay - Observability Module

- Structured JSON logging with per-session context
- Prometheus metrics for relay sessions

Usage:
    from chatrelay.observability import get_logger, get_metrics

    logger = get_logger(__name__)
    metrics = get_metrics()
"""

from .logging import (
    JSONFormatter,
    LogContext,
    StructuredLogger,
    get_logger,
    setup_logging,
)
from .metrics import (
    RelayMetrics,
    get_metrics,
    metrics_endpoint,
)

__all__ = [
    # Logging
    "JSONFormatter",
    "LogContext",
    "StructuredLogger",
    "get_logger",
    "setup_logging",
    # Metrics
    "RelayMetrics",
    "get_metrics",
    "metrics_endpoint",
]
