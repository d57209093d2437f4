"""Request and decision models for the triage pipelines.

A TriageRequest is built once per incoming artifact and is immutable.
Each stage produces a verdict from its own closed vocabulary; the first
terminal verdict ends the run and becomes the Decision, which names the
stage that produced it. The Decision plus the ActionPlan it selects and
the outcome of each platform call make up the TriageResult.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from src.triage.actions import ActionOutcome, ActionPlan, ActionType


class ArtifactKind(str, Enum):
    """Kinds of artifact the gate triages."""

    ISSUE = "issue"
    PULL_REQUEST = "pull_request"


class TriageContext(BaseModel):
    """External context gathered before the pipeline runs.

    Attributes:
        readme: README text, if the repository has one.
        pinned_content: Pinned issues rendered as markdown blocks.
        file_change_summary: Bounded diff summary (pull requests only).
    """

    model_config = ConfigDict(frozen=True)

    readme: Optional[str] = None
    pinned_content: Optional[str] = None
    file_change_summary: Optional[str] = None


class TriageRequest(BaseModel):
    """One artifact submitted for triage.

    Attributes:
        kind: Issue or pull request.
        title: Artifact title.
        body: Artifact body, empty when the author left it blank.
        author: Login of the author.
        context: README, pinned and diff context.
        repository: Full repository name (owner/repo), when known.
        number: Issue or pull request number, when known.
    """

    model_config = ConfigDict(frozen=True)

    kind: ArtifactKind
    title: str
    body: str = ""
    author: str = ""
    context: TriageContext = Field(default_factory=TriageContext)
    repository: str = ""
    number: int = 0

    @property
    def artifact_id(self) -> str:
        """Identifier used in logs and events, e.g. "owner/repo#12"."""
        return f"{self.repository}#{self.number}"


# -----------------------------------------------------------------------------
# Stage verdicts
# -----------------------------------------------------------------------------
class BlocklistVerdict(str, Enum):
    BLOCKED = "BLOCKED"
    ALLOWED = "ALLOWED"


class SpamVerdict(str, Enum):
    SPAM = "SPAM"
    NOT_SPAM = "NOT_SPAM"


class CoverageVerdict(str, Enum):
    COVERED = "COVERED"
    NOT_COVERED = "NOT_COVERED"


class ClassificationVerdict(str, Enum):
    """Outcome of label resolution.

    NEEDS_DETAIL means the label belongs to the bug-like group and the
    issue quality stage must run before a final decision.
    """

    LABELED = "LABELED"
    UNLABELED = "UNLABELED"
    NEEDS_DETAIL = "NEEDS_DETAIL"


class IssueQualityVerdict(str, Enum):
    UNCLEAR = "UNCLEAR"
    BASIC = "BASIC"
    VALID = "VALID"


class CommitVerdict(str, Enum):
    VALID_COMMIT = "VALID_COMMIT"
    INVALID_COMMIT = "INVALID_COMMIT"


class PRQualityVerdict(str, Enum):
    MALICIOUS = "MALICIOUS"
    TRIVIAL = "TRIVIAL"
    UNCLEAR = "UNCLEAR"
    VALID = "VALID"


class FinalVerdict(str, Enum):
    """Terminal decision of a pipeline run."""

    SPAM = "SPAM"
    README_COVERED = "README_COVERED"
    UNCLEAR = "UNCLEAR"
    BASIC = "BASIC"
    KEEP = "KEEP"
    MALICIOUS = "MALICIOUS"
    TRIVIAL = "TRIVIAL"
    INVALID_COMMIT = "INVALID_COMMIT"
    BLOCKED = "BLOCKED"


class StageRecord(BaseModel):
    """Verdict produced by one executed stage."""

    model_config = ConfigDict(frozen=True)

    stage: str
    verdict: str
    terminal: bool = False


class Decision(BaseModel):
    """Terminal decision with provenance.

    Attributes:
        final_verdict: The decision.
        triggering_stage: Name of the stage that produced it.
        matched_label: Label resolved by classification, if any.
        trail: Verdicts of every executed stage, in execution order.
    """

    model_config = ConfigDict(frozen=True)

    final_verdict: FinalVerdict
    triggering_stage: str
    matched_label: Optional[str] = None
    trail: tuple[StageRecord, ...] = ()


@dataclass(frozen=True)
class TriageResult:
    """Decision, the actions it selected, and how each call went."""

    decision: Decision
    plan: ActionPlan
    action_outcomes: tuple[ActionOutcome, ...] = ()

    @property
    def failed_actions(self) -> list[ActionType]:
        return [o.action for o in self.action_outcomes if not o.succeeded]

    @property
    def partial_failure(self) -> bool:
        """True when at least one platform call failed."""
        return bool(self.failed_actions)
