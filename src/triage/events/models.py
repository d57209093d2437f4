"""Triage event models for observability.

This module defines:
- EventType: the kinds of event emitted while triaging an artifact
- TriageEvent: structured event with artifact identity and details

Details Field Conventions:
    STAGE_COMPLETED: stage, verdict, terminal
    DECISION: final_verdict, triggering_stage, matched_label,
        duration_seconds
    ACTION_FAILED: action, error
    ERROR: stage, error_message, error_type
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Types of events emitted by the triage gate.

    Attributes:
        STAGE_COMPLETED: A pipeline stage produced a verdict.
        DECISION: A pipeline run reached its terminal decision.
        ACTION_FAILED: A platform call in the action plan failed.
        ERROR: Triage of an artifact aborted with an error.
    """

    STAGE_COMPLETED = "stage_completed"
    DECISION = "decision"
    ACTION_FAILED = "action_failed"
    ERROR = "error"


class TriageEvent(BaseModel):
    """Structured event emitted while triaging one artifact.

    Attributes:
        event_type: The category of event.
        artifact_id: Identifier in format "{owner}/{repo}#{number}".
        repository: Full repository path in format "{owner}/{repo}".
        kind: Artifact kind ("issue" or "pull_request").
        timestamp: When the event occurred (UTC timezone).
        details: Additional context specific to the event type.

    Example:
        >>> event = TriageEvent(
        ...     event_type=EventType.DECISION,
        ...     artifact_id="org/repo#123",
        ...     repository="org/repo",
        ...     kind="issue",
        ...     details={"final_verdict": "SPAM", "triggering_stage": "spam"},
        ... )
    """

    event_type: EventType = Field(
        ...,
        description="The category of event being emitted",
    )

    artifact_id: str = Field(
        ...,
        min_length=1,
        description='Artifact identifier in format "{owner}/{repo}#{number}"',
    )

    repository: str = Field(
        ...,
        min_length=1,
        description='Full repository path in format "{owner}/{repo}"',
    )

    kind: str = Field(
        default="issue",
        description="Artifact kind: issue or pull_request",
    )

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC timezone)",
    )

    details: Dict[str, Any] = Field(
        default_factory=dict,
        description="Additional context specific to the event type",
    )

    def to_log_dict(self) -> Dict[str, Any]:
        """Flatten the event into a dict for structured logging.

        >>> event = TriageEvent(
        ...     event_type=EventType.ERROR,
        ...     artifact_id="org/repo#123",
        ...     repository="org/repo",
        ...     details={"error_message": "LLM timeout"},
        ... )
        >>> event.to_log_dict()["event_type"]
        'error'
        """
        return {
            "event_type": self.event_type.value,
            "artifact_id": self.artifact_id,
            "repository": self.repository,
            "kind": self.kind,
            "timestamp": self.timestamp.isoformat(),
            **self.details,
        }
