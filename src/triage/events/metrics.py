"""Prometheus metrics for the triage gate.

Metrics are exposed at the `/metrics` endpoint in Prometheus format.

Metrics Defined:
- triage_decisions_total{kind, verdict}: terminal decisions reached
- triage_action_failures_total{action}: failed platform calls
- triage_errors_total{stage}: triage runs aborted by an error
- triage_processing_duration_seconds{kind}: time from intake to decision

MetricsEventEmitter updates these from triage events.
"""

import logging
from typing import Optional

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

from src.triage.events.emitter import EventEmitter
from src.triage.events.models import EventType, TriageEvent


logger = logging.getLogger(__name__)


# Oracle calls dominate; a run takes a few seconds up to a couple of minutes
DEFAULT_DURATION_BUCKETS = (
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
    30.0,
    60.0,
    120.0,
    300.0,
)


class TriageMetrics:
    """Container for all triage Prometheus metrics.

    Supports custom registries for testing.

    Example:
        >>> metrics = TriageMetrics(registry=CollectorRegistry())
        >>> metrics.record_decision("issue", "SPAM")
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or REGISTRY

        self.decisions_total = Counter(
            "triage_decisions_total",
            "Total number of triage decisions by artifact kind and verdict",
            labelnames=["kind", "verdict"],
            registry=self.registry,
        )

        self.action_failures_total = Counter(
            "triage_action_failures_total",
            "Total number of failed platform actions",
            labelnames=["action"],
            registry=self.registry,
        )

        self.errors_total = Counter(
            "triage_errors_total",
            "Total number of triage runs aborted by an error",
            labelnames=["stage"],
            registry=self.registry,
        )

        self.processing_duration_seconds = Histogram(
            "triage_processing_duration_seconds",
            "Time spent triaging an artifact in seconds",
            labelnames=["kind"],
            buckets=DEFAULT_DURATION_BUCKETS,
            registry=self.registry,
        )

    def record_decision(self, kind: str, verdict: str) -> None:
        self.decisions_total.labels(kind=kind, verdict=verdict).inc()

    def record_action_failure(self, action: str) -> None:
        self.action_failures_total.labels(action=action).inc()

    def record_error(self, stage: str) -> None:
        self.errors_total.labels(stage=stage).inc()

    def record_processing_duration(self, kind: str, duration_seconds: float) -> None:
        self.processing_duration_seconds.labels(kind=kind).observe(duration_seconds)


_default_metrics: Optional[TriageMetrics] = None


def get_metrics(registry: Optional[CollectorRegistry] = None) -> TriageMetrics:
    """Get the global metrics instance, or a new one for a custom registry."""
    global _default_metrics

    if registry is not None:
        return TriageMetrics(registry=registry)

    if _default_metrics is None:
        _default_metrics = TriageMetrics()

    return _default_metrics


def generate_metrics_output(registry: Optional[CollectorRegistry] = None) -> bytes:
    """Generate Prometheus text output for the /metrics endpoint."""
    return generate_latest(registry or REGISTRY)


class MetricsEventEmitter(EventEmitter):
    """Event emitter that updates Prometheus metrics.

    - DECISION: increments decisions, records duration
    - ACTION_FAILED: increments action failures
    - ERROR: increments errors
    - STAGE_COMPLETED: ignored
    """

    def __init__(
        self,
        metrics: Optional[TriageMetrics] = None,
        registry: Optional[CollectorRegistry] = None,
    ):
        self._metrics = metrics if metrics is not None else get_metrics(registry)

    @property
    def metrics(self) -> TriageMetrics:
        return self._metrics

    async def emit(self, event: TriageEvent) -> None:
        try:
            if event.event_type == EventType.DECISION:
                self._metrics.record_decision(
                    event.kind, str(event.details.get("final_verdict", "unknown"))
                )
                duration = event.details.get("duration_seconds")
                if duration is not None:
                    self._metrics.record_processing_duration(
                        event.kind, float(duration)
                    )
            elif event.event_type == EventType.ACTION_FAILED:
                self._metrics.record_action_failure(
                    str(event.details.get("action", "unknown"))
                )
            elif event.event_type == EventType.ERROR:
                self._metrics.record_error(str(event.details.get("stage", "unknown")))
        except Exception as e:
            logger.error(
                "Failed to update metrics for event %s: %s",
                event.event_type.value,
                str(e),
                extra={
                    "event_type": event.event_type.value,
                    "artifact_id": event.artifact_id,
                    "error": str(e),
                },
            )
