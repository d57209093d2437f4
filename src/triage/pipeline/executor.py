"""Stage interpreter and shared pipeline machinery.

A pipeline variant is an ordered list of Stage descriptors. Each stage
looks at the shared StageContext and returns a StageOutcome: a verdict
token from the stage's vocabulary and, when the verdict is terminal, the
final decision plus the ActionPlan it selects. run_stages() executes the
list in order and stops at the first terminal outcome.

Model-backed stages go through TriagePipeline.ask_verdict(), which renders
the stage prompt, calls the oracle, and maps the reply onto the stage's
vocabulary. An oracle failure raises OracleError and aborts the run before
any action is chosen. An unrecognized reply falls back to the stage's
documented default and is logged.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Mapping, Optional, Sequence, TypeVar

from src.triage.actions import (
    ActionExecutor,
    ActionPlan,
    run_action_plan,
)
from src.triage.analysis.models import ContentAnalysis
from src.triage.analysis.quality import ContentQualityScorer, analyze_content
from src.triage.analysis.template import TemplateAnalyzer
from src.triage.classifier.oracle import ClassifierOracle
from src.triage.config import TriageConfig
from src.triage.pipeline.models import (
    ArtifactKind,
    BlocklistVerdict,
    Decision,
    FinalVerdict,
    StageRecord,
    TriageRequest,
    TriageResult,
)
from src.triage.prompts import render


logger = logging.getLogger(__name__)


V = TypeVar("V", bound=Enum)

_TOKEN_EDGES = "\"'`*.,:;!?()[]{}<> \t"


@dataclass
class StageContext:
    """Per-request state shared by the stages of one run.

    Attributes:
        request: The artifact being triaged.
        analysis: Heuristic template and quality analysis of the artifact.
        readme_url: Link to the repository README for response templates.
        label: Label resolved by the classification stage, if any.
    """

    request: TriageRequest
    analysis: ContentAnalysis
    readme_url: str = ""
    label: Optional[str] = None


@dataclass(frozen=True)
class StageOutcome:
    """What a stage decided.

    A non-terminal outcome only records the verdict; the run continues.
    """

    verdict: str
    final_verdict: Optional[FinalVerdict] = None
    plan: ActionPlan = field(default_factory=ActionPlan)

    @property
    def terminal(self) -> bool:
        return self.final_verdict is not None

    @classmethod
    def proceed(cls, verdict: Enum) -> "StageOutcome":
        return cls(verdict=verdict.value)

    @classmethod
    def finish(
        cls,
        verdict: Enum,
        final_verdict: FinalVerdict,
        plan: Optional[ActionPlan] = None,
    ) -> "StageOutcome":
        return cls(
            verdict=verdict.value,
            final_verdict=final_verdict,
            plan=plan or ActionPlan(),
        )


@dataclass(frozen=True)
class Stage:
    """A named pipeline step."""

    name: str
    run: Callable[[StageContext], Awaitable[StageOutcome]]


async def run_stages(
    stages: Sequence[Stage],
    ctx: StageContext,
) -> tuple[Decision, ActionPlan]:
    """Execute stages in order until one produces a terminal verdict.

    If every stage is non-terminal the run ends with KEEP, attributed to
    the last stage, and the resolved label (if any) is applied.

    Raises:
        OracleError: Propagated from the first failing model stage.
        ValueError: If no stages are given.
    """
    if not stages:
        raise ValueError("A pipeline needs at least one stage")

    trail: list[StageRecord] = []
    for stage in stages:
        logger.info(
            "Stage started",
            extra={"artifact_id": ctx.request.artifact_id, "stage": stage.name},
        )
        outcome = await stage.run(ctx)
        trail.append(
            StageRecord(
                stage=stage.name,
                verdict=outcome.verdict,
                terminal=outcome.terminal,
            )
        )
        logger.info(
            "Stage completed",
            extra={
                "artifact_id": ctx.request.artifact_id,
                "stage": stage.name,
                "verdict": outcome.verdict,
                "terminal": outcome.terminal,
            },
        )
        if outcome.terminal:
            decision = Decision(
                final_verdict=outcome.final_verdict,
                triggering_stage=stage.name,
                matched_label=ctx.label,
                trail=tuple(trail),
            )
            return decision, outcome.plan

    decision = Decision(
        final_verdict=FinalVerdict.KEEP,
        triggering_stage=stages[-1].name,
        matched_label=ctx.label,
        trail=tuple(trail),
    )
    return decision, ActionPlan(label=ctx.label)


def normalize_token(text: Optional[str]) -> str:
    """Normalize an oracle reply for vocabulary matching.

    Takes the first non-blank line, trims quotes and punctuation,
    uppercases it and joins words with underscores.

    >>> normalize_token('  "not spam."  ')
    'NOT_SPAM'
    >>> normalize_token("SPAM: advertising links")
    'SPAM_ADVERTISING_LINKS'
    """
    lines = [line for line in (text or "").splitlines() if line.strip()]
    if not lines:
        return ""
    token = lines[0].strip().strip(_TOKEN_EDGES).upper()
    return re.sub(r"[\W_]+", "_", token).strip("_")


def match_verdict(
    text: Optional[str],
    vocabulary: type[V],
    fallback: V,
    aliases: Optional[Mapping[str, V]] = None,
    purpose: str = "",
) -> V:
    """Map an oracle reply onto a closed verdict vocabulary.

    Matching order: exact token, then the longest vocabulary member the
    token starts with (so "NOT_SPAM" is never read as "SPAM"), then
    aliases. Anything else yields the fallback, with a warning.
    """
    token = normalize_token(text)
    members = {member.value: member for member in vocabulary}

    if token in members:
        return members[token]

    for value in sorted(members, key=len, reverse=True):
        if token.startswith(value + "_"):
            return members[value]

    if aliases:
        for alias, member in aliases.items():
            if token == alias or token.startswith(alias + "_"):
                return member

    logger.warning(
        "Unrecognized oracle verdict, using fallback",
        extra={
            "purpose": purpose,
            "reply_preview": (text or "")[:100],
            "fallback": fallback.value,
        },
    )
    return fallback


class TriagePipeline:
    """Base class for the issue and pull request pipelines.

    Subclasses declare their artifact kind, the templates they need, and
    build their ordered stage list in build_stages(). Construction checks
    that every required template is configured and raises
    ConfigurationError otherwise.
    """

    kind: ArtifactKind = ArtifactKind.ISSUE
    required_prompts: tuple[str, ...] = ()
    required_responses: tuple[str, ...] = ()

    # Response posted when the author is blocklisted, and whether to lock
    blocked_response: str = ""
    lock_blocked: bool = True

    def __init__(self, oracle: ClassifierOracle, config: TriageConfig):
        config.require(
            prompts=self.required_prompts,
            responses=self.required_responses,
        )
        self.oracle = oracle
        self.config = config
        self.analyzer = TemplateAnalyzer(config.template_confidence_threshold)
        self.scorer = ContentQualityScorer(config.quality_weights)
        self.stages: list[Stage] = self.build_stages()

    def build_stages(self) -> list[Stage]:
        raise NotImplementedError

    @property
    def stage_names(self) -> list[str]:
        return [stage.name for stage in self.stages]

    def prepare(self, request: TriageRequest) -> StageContext:
        """Analyze the artifact and build the run context."""
        if request.kind != self.kind:
            raise ValueError(
                f"{type(self).__name__} cannot triage a {request.kind.value}"
            )
        analysis = analyze_content(
            request.title,
            request.body,
            analyzer=self.analyzer,
            scorer=self.scorer,
        )
        readme_url = (
            f"https://github.com/{request.repository}#readme"
            if request.repository
            else ""
        )
        return StageContext(request=request, analysis=analysis, readme_url=readme_url)

    async def decide(self, request: TriageRequest) -> tuple[Decision, ActionPlan]:
        """Run the stages and return the decision and its action plan.

        Raises:
            OracleError: If a model stage fails; no action has been taken.
        """
        ctx = self.prepare(request)
        decision, plan = await run_stages(self.stages, ctx)
        logger.info(
            "Triage decision reached",
            extra={
                "artifact_id": request.artifact_id,
                "kind": self.kind.value,
                "final_verdict": decision.final_verdict.value,
                "triggering_stage": decision.triggering_stage,
                "matched_label": decision.matched_label,
            },
        )
        return decision, plan

    async def run(
        self,
        request: TriageRequest,
        executor: ActionExecutor,
    ) -> TriageResult:
        """Decide and apply the selected actions.

        Platform call failures do not raise; they are reported in the
        result's action_outcomes.

        Raises:
            OracleError: If a model stage fails before a decision.
        """
        decision, plan = await self.decide(request)
        outcomes = []
        if not plan.is_empty:
            outcomes = await run_action_plan(executor, plan, request.artifact_id)
        return TriageResult(
            decision=decision,
            plan=plan,
            action_outcomes=tuple(outcomes),
        )

    # -------------------------------------------------------------------------
    # Stage helpers
    # -------------------------------------------------------------------------
    def render_prompt(self, purpose: str, variables: Mapping[str, object]) -> str:
        return render(self.config.prompts[purpose], variables)

    async def ask(self, purpose: str, variables: Mapping[str, object]) -> str:
        """Render a prompt, call the oracle and return its reply text.

        Raises:
            OracleError: If the oracle reports a failure.
        """
        result = await self.oracle.classify(
            self.render_prompt(purpose, variables), purpose
        )
        return result.unwrap(purpose)

    async def ask_verdict(
        self,
        purpose: str,
        variables: Mapping[str, object],
        vocabulary: type[V],
        fallback: V,
        aliases: Optional[Mapping[str, V]] = None,
    ) -> V:
        text = await self.ask(purpose, variables)
        return match_verdict(text, vocabulary, fallback, aliases, purpose)

    def respond(
        self,
        name: str,
        variables: Optional[Mapping[str, object]] = None,
    ) -> str:
        """Render a response template."""
        return render(self.config.responses[name], variables or {})

    def closing_plan(
        self,
        comment: str,
        lock: bool,
        label: Optional[str] = None,
    ) -> ActionPlan:
        return ActionPlan(
            comment=comment,
            close=True,
            lock=lock,
            label=label,
            close_reason=self.config.close_reason,
            lock_reason=self.config.lock_reason,
        )

    def blocklist_stage(self) -> Stage:
        """Stage closing artifacts from blocklisted authors without a model call."""

        async def check_blocklist(ctx: StageContext) -> StageOutcome:
            if not self.config.is_blocked(ctx.request.author):
                return StageOutcome.proceed(BlocklistVerdict.ALLOWED)
            logger.info(
                "Author is blocklisted",
                extra={
                    "artifact_id": ctx.request.artifact_id,
                    "author": ctx.request.author,
                },
            )
            comment = self.respond(
                self.blocked_response, {"readme_url": ctx.readme_url}
            )
            return StageOutcome.finish(
                BlocklistVerdict.BLOCKED,
                FinalVerdict.BLOCKED,
                self.closing_plan(comment, lock=self.lock_blocked),
            )

        return Stage(name="blocklist", run=check_blocklist)
