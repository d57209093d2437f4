"""Event emitter implementations for triage observability.

- EventEmitter: abstract interface
- LoggingEventEmitter: emits events as structured log entries
- CompositeEventEmitter: fans out to several emitters
- NullEventEmitter: discards events (tests)

create_event_emitter() builds an emitter from a list of sink types.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import List, Optional

from src.triage.events.models import EventType, TriageEvent


logger = logging.getLogger(__name__)


class EventSinkType(str, Enum):
    """Event sinks the gate can emit to.

    Attributes:
        LOGGING: Emit events as structured log entries.
        METRICS: Emit events as Prometheus metrics.
    """

    LOGGING = "logging"
    METRICS = "metrics"


class EventEmitter(ABC):
    """Abstract base class for triage event emitters.

    emit() is called from async request handling. Implementations should
    not block and should not let sink failures reach the caller.
    """

    @abstractmethod
    async def emit(self, event: TriageEvent) -> None:
        """Emit a triage event."""
        pass

    async def close(self) -> None:
        """Release resources. The default implementation does nothing."""
        pass


class LoggingEventEmitter(EventEmitter):
    """Event emitter that writes structured log entries.

    Log levels by event type:
    - STAGE_COMPLETED: DEBUG
    - DECISION: INFO
    - ACTION_FAILED: WARNING
    - ERROR: ERROR
    """

    def __init__(self, logger_name: Optional[str] = None):
        self._logger = logging.getLogger(logger_name) if logger_name else logger
        self._log_level_map = {
            EventType.STAGE_COMPLETED: logging.DEBUG,
            EventType.DECISION: logging.INFO,
            EventType.ACTION_FAILED: logging.WARNING,
            EventType.ERROR: logging.ERROR,
        }

    async def emit(self, event: TriageEvent) -> None:
        log_level = self._log_level_map.get(event.event_type, logging.INFO)
        self._logger.log(
            log_level,
            "Triage event: %s for %s",
            event.event_type.value,
            event.artifact_id,
            extra=event.to_log_dict(),
        )


class CompositeEventEmitter(EventEmitter):
    """Event emitter that delegates to multiple child emitters.

    Each child is called independently; a failing child is logged and
    does not stop the others.
    """

    def __init__(self, emitters: Optional[List[EventEmitter]] = None):
        self._emitters: List[EventEmitter] = emitters or []

    def add_emitter(self, emitter: EventEmitter) -> None:
        self._emitters.append(emitter)

    @property
    def emitters(self) -> List[EventEmitter]:
        """Child emitters (copy)."""
        return list(self._emitters)

    async def emit(self, event: TriageEvent) -> None:
        for emitter in self._emitters:
            try:
                await emitter.emit(event)
            except Exception as e:
                logger.error(
                    "Failed to emit event to %s: %s",
                    type(emitter).__name__,
                    str(e),
                    extra={
                        "emitter_type": type(emitter).__name__,
                        "event_type": event.event_type.value,
                        "artifact_id": event.artifact_id,
                        "error": str(e),
                    },
                )

    async def close(self) -> None:
        for emitter in self._emitters:
            try:
                await emitter.close()
            except Exception as e:
                logger.error(
                    "Failed to close emitter %s: %s",
                    type(emitter).__name__,
                    str(e),
                )


class NullEventEmitter(EventEmitter):
    """Event emitter that discards all events."""

    async def emit(self, event: TriageEvent) -> None:
        pass


def create_event_emitter(
    sink_types: Optional[List[EventSinkType]] = None,
    logger_name: Optional[str] = None,
) -> EventEmitter:
    """Create an emitter for the requested sinks.

    Args:
        sink_types: Sinks to enable. Defaults to logging only.
        logger_name: Optional logger name for the logging sink.

    Returns:
        A single emitter, or a CompositeEventEmitter for several sinks.

    Example:
        >>> emitter = create_event_emitter(
        ...     [EventSinkType.LOGGING, EventSinkType.METRICS]
        ... )
        >>> isinstance(emitter, CompositeEventEmitter)
        True
    """
    if not sink_types:
        return LoggingEventEmitter(logger_name=logger_name)

    emitters: List[EventEmitter] = []
    for sink_type in sink_types:
        if sink_type == EventSinkType.LOGGING:
            emitters.append(LoggingEventEmitter(logger_name=logger_name))
        elif sink_type == EventSinkType.METRICS:
            # metrics.py imports this module
            from src.triage.events.metrics import MetricsEventEmitter

            emitters.append(MetricsEventEmitter())
        else:
            logger.warning("Unknown event sink type: %s, skipping", sink_type)

    if not emitters:
        return LoggingEventEmitter(logger_name=logger_name)
    if len(emitters) == 1:
        return emitters[0]
    return CompositeEventEmitter(emitters)
