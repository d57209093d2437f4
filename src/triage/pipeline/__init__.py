"""Staged decision pipelines for issues and pull requests.

This module provides:
- The stage interpreter (Stage, StageOutcome, run_stages)
- IssuePipeline and PullRequestPipeline, the two declared stage lists
- Request, verdict and decision models
- The Conventional Commits title check
"""

from src.triage.pipeline.commit import is_valid_commit_title
from src.triage.pipeline.executor import (
    Stage,
    StageContext,
    StageOutcome,
    TriagePipeline,
    match_verdict,
    normalize_token,
    run_stages,
)
from src.triage.pipeline.issue import IssuePipeline
from src.triage.pipeline.models import (
    ArtifactKind,
    Decision,
    FinalVerdict,
    StageRecord,
    TriageContext,
    TriageRequest,
    TriageResult,
)
from src.triage.pipeline.pull_request import (
    PullRequestPipeline,
    build_file_change_context,
)

__all__ = [
    "ArtifactKind",
    "build_file_change_context",
    "Decision",
    "FinalVerdict",
    "is_valid_commit_title",
    "IssuePipeline",
    "match_verdict",
    "normalize_token",
    "PullRequestPipeline",
    "run_stages",
    "Stage",
    "StageContext",
    "StageOutcome",
    "StageRecord",
    "TriageContext",
    "TriagePipeline",
    "TriageRequest",
    "TriageResult",
]
