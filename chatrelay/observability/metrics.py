"""
chatrelay - Prometheus Metrics

Metrics exposed:
- chatrelay_sessions_total: Counter of finished sessions by provider, outcome, category
- chatrelay_fragments_total: Counter of fragments forwarded downstream
- chatrelay_decode_anomalies_total: Counter of skipped malformed event lines
- chatrelay_active_sessions: Gauge of sessions currently running
- chatrelay_session_duration_seconds: Histogram of session lifetime
- chatrelay_time_to_first_fragment_seconds: Histogram of latency to first fragment

Usage:
    from chatrelay.observability.metrics import get_metrics, metrics_endpoint

    metrics = get_metrics()
    metrics.session_started("gemini")
    metrics.record_fragment("gemini")
    metrics.session_finished("gemini", outcome="completed", category="", duration_seconds=1.2)

    @app.get("/metrics")
    async def metrics():
        return metrics_endpoint()
"""

from typing import Optional

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)


class RelayMetrics:
    """
    Relay metrics collector.

    Pass a private CollectorRegistry in tests; the process-wide
    instance from get_metrics() registers on the default REGISTRY.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self.registry = registry

        self.sessions_total = Counter(
            "chatrelay_sessions_total",
            "Finished relay sessions",
            labelnames=["provider", "outcome", "category"],
            registry=registry,
        )

        self.fragments_total = Counter(
            "chatrelay_fragments_total",
            "Fragments forwarded downstream",
            labelnames=["provider"],
            registry=registry,
        )

        self.decode_anomalies_total = Counter(
            "chatrelay_decode_anomalies_total",
            "Malformed upstream event lines skipped",
            labelnames=["provider"],
            registry=registry,
        )

        self.active_sessions = Gauge(
            "chatrelay_active_sessions",
            "Relay sessions currently running",
            labelnames=["provider"],
            registry=registry,
        )

        # Generations range from sub-second to a couple of minutes
        self.session_duration = Histogram(
            "chatrelay_session_duration_seconds",
            "Relay session duration in seconds",
            labelnames=["provider"],
            buckets=(0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 25.0, 50.0, 100.0, float("inf")),
            registry=registry,
        )

        self.time_to_first_fragment = Histogram(
            "chatrelay_time_to_first_fragment_seconds",
            "Time from session start to first forwarded fragment",
            labelnames=["provider"],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, float("inf")),
            registry=registry,
        )

    def session_started(self, provider: str) -> None:
        self.active_sessions.labels(provider=provider).inc()

    def session_finished(
        self,
        provider: str,
        outcome: str,
        category: str,
        duration_seconds: float,
    ) -> None:
        self.active_sessions.labels(provider=provider).dec()
        self.sessions_total.labels(
            provider=provider,
            outcome=outcome,
            category=category or "",
        ).inc()
        self.session_duration.labels(provider=provider).observe(duration_seconds)

    def record_fragment(self, provider: str) -> None:
        self.fragments_total.labels(provider=provider).inc()

    def record_first_fragment(self, provider: str, seconds: float) -> None:
        self.time_to_first_fragment.labels(provider=provider).observe(seconds)

    def record_decode_anomaly(self, provider: str) -> None:
        self.decode_anomalies_total.labels(provider=provider).inc()


_metrics: Optional[RelayMetrics] = None


def get_metrics() -> RelayMetrics:
    """Get the process-wide metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = RelayMetrics()
    return _metrics


def metrics_endpoint() -> Response:
    """Render the default registry in Prometheus text format."""
    return Response(
        content=generate_latest(REGISTRY),
        media_type=CONTENT_TYPE_LATEST,
    )
