"""Issue triage pipeline.

Stages, in order:
1. blocklist: authors on the blocklist are closed and locked.
2. spam: model check using title, body and the template analysis report.
   SPAM closes and locks the issue with an explanatory comment.
3. readme_coverage: skipped (NOT_COVERED) when there is neither README
   nor pinned-issue context. COVERED posts an answer grounded in the
   README and closes without locking.
4. classification: resolves a label from the extracted user content.
   Labels outside the needs-detail group end the run with KEEP.
5. quality: runs only for needs-detail labels. UNCLEAR asks for more
   detail (or posts a README-based hint) and leaves the issue open,
   BASIC closes and locks, VALID keeps the issue and applies the label.
"""

import logging

from src.triage.actions import ActionPlan
from src.triage.classifier.resolver import resolve_label
from src.triage.pipeline.executor import (
    Stage,
    StageContext,
    StageOutcome,
    TriagePipeline,
    normalize_token,
)
from src.triage.pipeline.models import (
    ArtifactKind,
    ClassificationVerdict,
    CoverageVerdict,
    FinalVerdict,
    IssueQualityVerdict,
    SpamVerdict,
)


logger = logging.getLogger(__name__)


COVERAGE_ALIASES = {
    "RELATED": CoverageVerdict.COVERED,
    "UNRELATED": CoverageVerdict.NOT_COVERED,
    "NOT_RELATED": CoverageVerdict.NOT_COVERED,
}


class IssuePipeline(TriagePipeline):
    """Decision pipeline for newly opened issues."""

    kind = ArtifactKind.ISSUE
    required_prompts = (
        "issue_spam",
        "readme_coverage",
        "readme_answer",
        "issue_classification",
        "issue_quality",
        "unclear_answer",
    )
    required_responses = (
        "issue_closed",
        "issue_basic",
        "issue_unclear",
        "readme_answer_prefix",
        "unclear_smart_prefix",
    )
    blocked_response = "issue_closed"
    lock_blocked = True

    def build_stages(self) -> list[Stage]:
        return [
            self.blocklist_stage(),
            Stage(name="spam", run=self.check_spam),
            Stage(name="readme_coverage", run=self.check_readme_coverage),
            Stage(name="classification", run=self.classify),
            Stage(name="quality", run=self.check_quality),
        ]

    def _issue_variables(self, ctx: StageContext) -> dict[str, str]:
        return {
            "issue_title": ctx.request.title,
            "issue_body": ctx.request.body,
        }

    async def check_spam(self, ctx: StageContext) -> StageOutcome:
        verdict = await self.ask_verdict(
            "issue_spam",
            {
                **self._issue_variables(ctx),
                "template_analysis": ctx.analysis.report,
            },
            SpamVerdict,
            fallback=SpamVerdict.NOT_SPAM,
        )
        if verdict is SpamVerdict.NOT_SPAM:
            return StageOutcome.proceed(verdict)

        comment = self.respond("issue_closed", {"readme_url": ctx.readme_url})
        return StageOutcome.finish(
            verdict, FinalVerdict.SPAM, self.closing_plan(comment, lock=True)
        )

    async def check_readme_coverage(self, ctx: StageContext) -> StageOutcome:
        context = ctx.request.context
        readme = context.readme or ""
        pinned = context.pinned_content or ""
        if not readme.strip() and not pinned.strip():
            return StageOutcome.proceed(CoverageVerdict.NOT_COVERED)

        variables = {
            **self._issue_variables(ctx),
            "readme_content": readme,
            "pinned_issues_content": pinned,
        }
        verdict = await self.ask_verdict(
            "readme_coverage",
            variables,
            CoverageVerdict,
            fallback=CoverageVerdict.NOT_COVERED,
            aliases=COVERAGE_ALIASES,
        )
        if verdict is CoverageVerdict.NOT_COVERED:
            return StageOutcome.proceed(verdict)

        answer = await self.ask("readme_answer", variables)
        comment = self.respond("readme_answer_prefix") + answer
        return StageOutcome.finish(
            verdict,
            FinalVerdict.README_COVERED,
            self.closing_plan(comment, lock=False),
        )

    async def classify(self, ctx: StageContext) -> StageOutcome:
        labels = self.config.labels
        if not labels:
            return StageOutcome.finish(
                ClassificationVerdict.UNLABELED, FinalVerdict.KEEP
            )

        content = ctx.analysis.content.user_content or ctx.request.body
        answer = await self.ask(
            "issue_classification",
            {
                "labels_options": ", ".join(labels),
                "issue_title": ctx.request.title,
                "user_content": content,
            },
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
        if self.config.needs_detail(ctx.label):
            return StageOutcome.proceed(ClassificationVerdict.NEEDS_DETAIL)
        return StageOutcome.finish(
            ClassificationVerdict.LABELED,
            FinalVerdict.KEEP,
            ActionPlan(label=ctx.label),
        )

    async def check_quality(self, ctx: StageContext) -> StageOutcome:
        analysis = ctx.analysis
        if analysis.template.has_template and analysis.content.is_empty:
            # A template with nothing filled in carries no signal
            verdict = IssueQualityVerdict.UNCLEAR
        else:
            verdict = await self.ask_verdict(
                "issue_quality",
                {
                    "issue_title": ctx.request.title,
                    "user_content": analysis.content.user_content
                    or ctx.request.body,
                    "quality_report": analysis.report,
                },
                IssueQualityVerdict,
                fallback=IssueQualityVerdict.VALID,
            )

        if verdict is IssueQualityVerdict.BASIC:
            return StageOutcome.finish(
                verdict,
                FinalVerdict.BASIC,
                self.closing_plan(self.respond("issue_basic"), lock=True),
            )
        if verdict is IssueQualityVerdict.UNCLEAR:
            comment = await self.unclear_comment(ctx)
            return StageOutcome.finish(
                verdict,
                FinalVerdict.UNCLEAR,
                ActionPlan(comment=comment, label=ctx.label),
            )
        return StageOutcome.finish(
            verdict, FinalVerdict.KEEP, ActionPlan(label=ctx.label)
        )

    async def unclear_comment(self, ctx: StageContext) -> str:
        """Comment for an unclear issue: a README-based hint when possible.

        The verdict is already decided here, so an oracle failure or a
        "no answer" reply falls back to the standard request for detail.
        """
        fallback = self.respond("issue_unclear")
        readme = ctx.request.context.readme or ""
        if not readme.strip():
            return fallback

        no_answer = self.config.unclear_no_answer_token
        prompt_vars = {
            **self._issue_variables(ctx),
            "readme_content": readme,
            "no_answer_token": no_answer,
        }
        result = await self.oracle.classify(
            self.render_prompt("unclear_answer", prompt_vars), "unclear_answer"
        )
        if not result.ok:
            logger.warning(
                "Could not generate answer for unclear issue",
                extra={
                    "artifact_id": ctx.request.artifact_id,
                    "failure_kind": result.failure_kind.value
                    if result.failure_kind
                    else None,
                    "detail": result.detail,
                },
            )
            return fallback

        answer = result.text.strip()
        if not answer or normalize_token(answer) == normalize_token(no_answer):
            return fallback
        return self.respond("unclear_smart_prefix") + answer
