"""Unit tests for triage events, emitters and Prometheus metrics."""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest
from prometheus_client import CollectorRegistry

from src.triage.events.emitter import (
    CompositeEventEmitter,
    EventSinkType,
    LoggingEventEmitter,
    NullEventEmitter,
    create_event_emitter,
)
from src.triage.events.metrics import (
    MetricsEventEmitter,
    TriageMetrics,
    generate_metrics_output,
)
from src.triage.events.models import EventType, TriageEvent


def run_async(coro):
    return asyncio.run(coro)


def _event(event_type, kind="issue", **details):
    return TriageEvent(
        event_type=event_type,
        artifact_id="octo/repo#12",
        repository="octo/repo",
        kind=kind,
        details=details,
    )


@pytest.fixture
def registry():
    return CollectorRegistry()


# ---------------------------------------------------------------------------
# TriageEvent
# ---------------------------------------------------------------------------


def test_log_dict_flattens_details():
    event = _event(EventType.DECISION, final_verdict="SPAM", triggering_stage="spam")

    data = event.to_log_dict()

    assert data["event_type"] == "decision"
    assert data["artifact_id"] == "octo/repo#12"
    assert data["kind"] == "issue"
    assert data["final_verdict"] == "SPAM"
    assert data["timestamp"].endswith("+00:00")


def test_event_requires_artifact_id():
    with pytest.raises(ValueError):
        TriageEvent(event_type=EventType.ERROR, artifact_id="", repository="octo/repo")


# ---------------------------------------------------------------------------
# LoggingEventEmitter
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "event_type,level",
    [
        (EventType.STAGE_COMPLETED, logging.DEBUG),
        (EventType.DECISION, logging.INFO),
        (EventType.ACTION_FAILED, logging.WARNING),
        (EventType.ERROR, logging.ERROR),
    ],
)
def test_logging_levels(caplog, event_type, level):
    emitter = LoggingEventEmitter(logger_name="triage.test.events")

    with caplog.at_level(logging.DEBUG, logger="triage.test.events"):
        run_async(emitter.emit(_event(event_type, stage="spam")))

    assert len(caplog.records) == 1
    record = caplog.records[0]
    assert record.levelno == level
    assert record.artifact_id == "octo/repo#12"
    assert record.stage == "spam"


# ---------------------------------------------------------------------------
# CompositeEventEmitter / factory
# ---------------------------------------------------------------------------


def test_composite_isolates_failing_emitter():
    failing = NullEventEmitter()
    failing.emit = AsyncMock(side_effect=RuntimeError("sink down"))
    healthy = NullEventEmitter()
    healthy.emit = AsyncMock()
    composite = CompositeEventEmitter([failing, healthy])

    event = _event(EventType.ERROR)
    run_async(composite.emit(event))

    failing.emit.assert_awaited_once_with(event)
    healthy.emit.assert_awaited_once_with(event)


def test_composite_close_closes_children():
    child = NullEventEmitter()
    child.close = AsyncMock()
    composite = CompositeEventEmitter()
    composite.add_emitter(child)

    run_async(composite.close())

    child.close.assert_awaited_once()
    assert composite.emitters == [child]


def test_factory_defaults_to_logging():
    assert isinstance(create_event_emitter(), LoggingEventEmitter)
    assert isinstance(
        create_event_emitter([EventSinkType.LOGGING]), LoggingEventEmitter
    )


def test_factory_builds_composite_for_several_sinks():
    emitter = create_event_emitter([EventSinkType.LOGGING, EventSinkType.METRICS])

    assert isinstance(emitter, CompositeEventEmitter)
    assert [type(e) for e in emitter.emitters] == [
        LoggingEventEmitter,
        MetricsEventEmitter,
    ]


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------


def test_decision_event_updates_counters(registry):
    emitter = MetricsEventEmitter(registry=registry)

    run_async(
        emitter.emit(
            _event(
                EventType.DECISION,
                kind="pull_request",
                final_verdict="TRIVIAL",
                duration_seconds=1.5,
            )
        )
    )

    assert (
        registry.get_sample_value(
            "triage_decisions_total", {"kind": "pull_request", "verdict": "TRIVIAL"}
        )
        == 1.0
    )
    assert (
        registry.get_sample_value(
            "triage_processing_duration_seconds_count", {"kind": "pull_request"}
        )
        == 1.0
    )
    assert (
        registry.get_sample_value(
            "triage_processing_duration_seconds_sum", {"kind": "pull_request"}
        )
        == 1.5
    )


def test_failure_and_error_events_update_counters(registry):
    emitter = MetricsEventEmitter(registry=registry)

    run_async(emitter.emit(_event(EventType.ACTION_FAILED, action="lock")))
    run_async(emitter.emit(_event(EventType.ACTION_FAILED, action="lock")))
    run_async(emitter.emit(_event(EventType.ERROR, stage="issue_spam")))
    run_async(emitter.emit(_event(EventType.STAGE_COMPLETED, stage="spam")))

    assert (
        registry.get_sample_value("triage_action_failures_total", {"action": "lock"})
        == 2.0
    )
    assert (
        registry.get_sample_value("triage_errors_total", {"stage": "issue_spam"})
        == 1.0
    )


def test_bad_duration_does_not_raise(registry):
    emitter = MetricsEventEmitter(metrics=TriageMetrics(registry=registry))

    run_async(
        emitter.emit(
            _event(EventType.DECISION, final_verdict="KEEP", duration_seconds="slow")
        )
    )

    assert (
        registry.get_sample_value(
            "triage_decisions_total", {"kind": "issue", "verdict": "KEEP"}
        )
        == 1.0
    )


def test_metrics_output_is_prometheus_text(registry):
    TriageMetrics(registry=registry).record_error("context")

    output = generate_metrics_output(registry)

    assert isinstance(output, bytes)
    assert b'triage_errors_total{stage="context"} 1.0' in output
