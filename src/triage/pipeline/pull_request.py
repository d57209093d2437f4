"""Pull request triage pipeline.

Stages, in order:
1. blocklist: authors on the blocklist are closed.
2. spam: model check using title, body and the file change summary.
3. commit_title: local Conventional Commits check, no model call.
4. quality: MALICIOUS and TRIVIAL close and lock; UNCLEAR leaves the
   pull request open with no label; VALID continues.
5. classification: resolves a label and ends the run with KEEP.

The file change summary is built before the run by
build_file_change_context() and travels in the request context.
"""

import logging
from typing import Sequence

from src.triage.actions import ActionPlan
from src.triage.analysis.changes import summarize_file_changes
from src.triage.classifier.resolver import resolve_label
from src.triage.config import TriageConfig
from src.triage.github.models import FileChange
from src.triage.pipeline.commit import is_valid_commit_title
from src.triage.pipeline.executor import (
    Stage,
    StageContext,
    StageOutcome,
    TriagePipeline,
)
from src.triage.pipeline.models import (
    ArtifactKind,
    ClassificationVerdict,
    CommitVerdict,
    FinalVerdict,
    PRQualityVerdict,
    SpamVerdict,
)
from src.triage.prompts import render


logger = logging.getLogger(__name__)


def build_file_change_context(
    files: Sequence[FileChange],
    config: TriageConfig,
) -> str:
    """File change text for pull request prompts.

    Returns the configured placeholder text when file analysis is
    disabled or the pull request changed no files.
    """
    if not config.analyze_file_changes:
        return render(config.responses["file_analysis_disabled"], {})
    if not files:
        return render(config.responses["no_file_changes"], {})
    return summarize_file_changes(
        files,
        config.depth_profile,
        truncation_template=config.responses.get("file_changes_truncated"),
    )


class PullRequestPipeline(TriagePipeline):
    """Decision pipeline for newly opened pull requests."""

    kind = ArtifactKind.PULL_REQUEST
    required_prompts = ("pr_spam", "pr_quality", "pr_classification")
    required_responses = (
        "pr_closed",
        "pr_invalid_commit",
        "pr_malicious",
        "pr_trivial",
        "no_file_changes",
        "file_analysis_disabled",
    )
    blocked_response = "pr_closed"
    lock_blocked = False

    def build_stages(self) -> list[Stage]:
        return [
            self.blocklist_stage(),
            Stage(name="spam", run=self.check_spam),
            Stage(name="commit_title", run=self.check_commit_title),
            Stage(name="quality", run=self.check_quality),
            Stage(name="classification", run=self.classify),
        ]

    def _pr_variables(self, ctx: StageContext) -> dict[str, str]:
        summary = ctx.request.context.file_change_summary
        if not summary:
            summary = self.respond("no_file_changes")
        return {
            "pr_title": ctx.request.title,
            "pr_body": ctx.request.body,
            "file_changes": summary,
        }

    async def check_spam(self, ctx: StageContext) -> StageOutcome:
        verdict = await self.ask_verdict(
            "pr_spam",
            self._pr_variables(ctx),
            SpamVerdict,
            fallback=SpamVerdict.NOT_SPAM,
        )
        if verdict is SpamVerdict.NOT_SPAM:
            return StageOutcome.proceed(verdict)
        return StageOutcome.finish(
            verdict,
            FinalVerdict.SPAM,
            self.closing_plan(self.respond("pr_closed"), lock=False),
        )

    async def check_commit_title(self, ctx: StageContext) -> StageOutcome:
        if is_valid_commit_title(ctx.request.title):
            return StageOutcome.proceed(CommitVerdict.VALID_COMMIT)
        return StageOutcome.finish(
            CommitVerdict.INVALID_COMMIT,
            FinalVerdict.INVALID_COMMIT,
            self.closing_plan(self.respond("pr_invalid_commit"), lock=False),
        )

    async def check_quality(self, ctx: StageContext) -> StageOutcome:
        verdict = await self.ask_verdict(
            "pr_quality",
            self._pr_variables(ctx),
            PRQualityVerdict,
            fallback=PRQualityVerdict.UNCLEAR,
        )
        if verdict is PRQualityVerdict.MALICIOUS:
            return StageOutcome.finish(
                verdict,
                FinalVerdict.MALICIOUS,
                self.closing_plan(self.respond("pr_malicious"), lock=True),
            )
        if verdict is PRQualityVerdict.TRIVIAL:
            return StageOutcome.finish(
                verdict,
                FinalVerdict.TRIVIAL,
                self.closing_plan(self.respond("pr_trivial"), lock=True),
            )
        if verdict is PRQualityVerdict.UNCLEAR:
            # Left open for a maintainer; no label, no comment
            return StageOutcome.finish(verdict, FinalVerdict.UNCLEAR)
        return StageOutcome.proceed(verdict)

    async def classify(self, ctx: StageContext) -> StageOutcome:
        labels = self.config.labels
        if not labels:
            return StageOutcome.finish(
                ClassificationVerdict.UNLABELED, FinalVerdict.KEEP
            )

        answer = await self.ask(
            "pr_classification",
            {**self._pr_variables(ctx), "labels_options": ", ".join(labels)},
        )
        ctx.label = resolve_label(answer, labels)
        if ctx.label is None:
            logger.info(
                "No label matched classifier answer",
                extra={
                    "artifact_id": ctx.request.artifact_id,
                    "answer_preview": answer[:100],
                },
            )
            return StageOutcome.finish(
                ClassificationVerdict.UNLABELED, FinalVerdict.KEEP
            )
        return StageOutcome.finish(
            ClassificationVerdict.LABELED,
            FinalVerdict.KEEP,
            ActionPlan(label=ctx.label),
        )
