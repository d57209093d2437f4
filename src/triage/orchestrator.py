"""Triage orchestrator connecting webhook intake to the pipelines.

For each accepted webhook event the orchestrator:
1. Gathers repository context (README and pinned issues for issues, the
   bounded file change summary for pull requests).
2. Builds the TriageRequest and picks the pipeline variant.
3. Runs the pipeline with a GitHub-backed action executor.
4. Emits STAGE_COMPLETED, DECISION and ACTION_FAILED events.

Errors are contained per request: they are logged, reported as an ERROR
event, and the event is dropped. README and pinned issues are optional
context, so failing to fetch them only degrades the run.
"""

import logging
import time
from typing import Callable, Optional

from src.triage.actions import ActionExecutor, GitHubActionExecutor
from src.triage.classifier.oracle import OracleError
from src.triage.config import TriageConfig
from src.triage.events.emitter import EventEmitter
from src.triage.events.models import EventType, TriageEvent
from src.triage.github.client import GitHubAPIError, GitHubClient
from src.triage.github.models import format_pinned_issues
from src.triage.pipeline.executor import TriagePipeline
from src.triage.pipeline.models import (
    ArtifactKind,
    TriageContext,
    TriageRequest,
    TriageResult,
)
from src.triage.pipeline.pull_request import build_file_change_context
from src.triage.webhook.models import ArtifactEvent

logger = logging.getLogger(__name__)


ExecutorFactory = Callable[[ArtifactEvent], ActionExecutor]


class TriageOrchestrator:
    """Drives webhook events through the triage pipelines.

    Attributes:
        github_client: GitHub API client for context reads and actions.
        issue_pipeline: Pipeline for issues.
        pull_request_pipeline: Pipeline for pull requests.
        config: Triage configuration.
        event_emitter: Emits triage events for observability.
        executor_factory: Builds the action executor for an event;
            defaults to a GitHubActionExecutor on github_client.
    """

    def __init__(
        self,
        github_client: GitHubClient,
        issue_pipeline: TriagePipeline,
        pull_request_pipeline: TriagePipeline,
        config: TriageConfig,
        event_emitter: EventEmitter,
        executor_factory: Optional[ExecutorFactory] = None,
    ):
        self.github_client = github_client
        self.issue_pipeline = issue_pipeline
        self.pull_request_pipeline = pull_request_pipeline
        self.config = config
        self.event_emitter = event_emitter
        self.executor_factory = executor_factory or self._github_executor

    def _github_executor(self, event: ArtifactEvent) -> ActionExecutor:
        return GitHubActionExecutor(
            self.github_client,
            event.owner,
            event.repository,
            event.number,
            pull_request=event.kind == ArtifactKind.PULL_REQUEST,
        )

    def pipeline_for(self, kind: ArtifactKind) -> TriagePipeline:
        if kind == ArtifactKind.PULL_REQUEST:
            return self.pull_request_pipeline
        return self.issue_pipeline

    async def process_event(self, event: ArtifactEvent) -> Optional[TriageResult]:
        """Triage one artifact.

        Args:
            event: Parsed webhook event.

        Returns:
            The TriageResult, or None if triage aborted with an error.
        """
        started = time.monotonic()
        logger.info(
            "Starting triage",
            extra={
                "artifact_id": event.artifact_id,
                "kind": event.kind.value,
                "title": event.title[:100],
            },
        )

        stage = "context"
        try:
            request = await self.build_request(event)
            stage = "pipeline"
            result = await self.pipeline_for(event.kind).run(
                request, self.executor_factory(event)
            )
        except OracleError as exc:
            await self._fail(event, exc.purpose or stage, exc)
            return None
        except Exception as exc:
            await self._fail(event, stage, exc)
            return None

        await self._emit_result_events(event, result, time.monotonic() - started)
        return result

    async def build_request(self, event: ArtifactEvent) -> TriageRequest:
        """Gather context for an event and build the TriageRequest.

        Raises:
            GitHubAPIError: If listing pull request files fails.
        """
        if event.kind == ArtifactKind.PULL_REQUEST:
            context = await self._pull_request_context(event)
        else:
            context = await self._issue_context(event)

        return TriageRequest(
            kind=event.kind,
            title=event.title,
            body=event.body,
            author=event.author,
            context=context,
            repository=event.full_repository,
            number=event.number,
        )

    async def _issue_context(self, event: ArtifactEvent) -> TriageContext:
        readme: Optional[str] = None
        try:
            readme = await self.github_client.get_readme(
                event.owner, event.repository
            )
        except GitHubAPIError as exc:
            logger.warning(
                "Could not fetch README, continuing without it",
                extra={"artifact_id": event.artifact_id, "error": str(exc)},
            )

        pinned: Optional[str] = None
        try:
            issues = await self.github_client.get_pinned_issues(
                event.owner, event.repository
            )
            pinned = format_pinned_issues(issues) or None
        except GitHubAPIError as exc:
            logger.warning(
                "Could not fetch pinned issues, continuing without them",
                extra={"artifact_id": event.artifact_id, "error": str(exc)},
            )

        return TriageContext(readme=readme, pinned_content=pinned)

    async def _pull_request_context(self, event: ArtifactEvent) -> TriageContext:
        files = []
        if self.config.analyze_file_changes:
            files = await self.github_client.list_pull_request_files(
                event.owner, event.repository, event.number
            )
        return TriageContext(
            file_change_summary=build_file_change_context(files, self.config)
        )

    async def _emit_result_events(
        self,
        event: ArtifactEvent,
        result: TriageResult,
        duration_seconds: float,
    ) -> None:
        decision = result.decision
        for record in decision.trail:
            await self._safe_emit(
                self._event(
                    event,
                    EventType.STAGE_COMPLETED,
                    {
                        "stage": record.stage,
                        "verdict": record.verdict,
                        "terminal": record.terminal,
                    },
                )
            )

        await self._safe_emit(
            self._event(
                event,
                EventType.DECISION,
                {
                    "final_verdict": decision.final_verdict.value,
                    "triggering_stage": decision.triggering_stage,
                    "matched_label": decision.matched_label,
                    "duration_seconds": duration_seconds,
                },
            )
        )

        for outcome in result.action_outcomes:
            if outcome.succeeded:
                continue
            await self._safe_emit(
                self._event(
                    event,
                    EventType.ACTION_FAILED,
                    {
                        "action": outcome.action.value,
                        "error": outcome.error.message if outcome.error else "",
                    },
                )
            )

    async def _fail(self, event: ArtifactEvent, stage: str, exc: Exception) -> None:
        """Log a failed triage run and emit an error event."""
        logger.exception(
            "Triage failed",
            extra={"artifact_id": event.artifact_id, "stage": stage},
        )
        await self._safe_emit(
            self._event(
                event,
                EventType.ERROR,
                {
                    "stage": stage,
                    "error_message": str(exc),
                    "error_type": type(exc).__name__,
                },
            )
        )

    def _event(
        self,
        event: ArtifactEvent,
        event_type: EventType,
        details: dict,
    ) -> TriageEvent:
        return TriageEvent(
            event_type=event_type,
            artifact_id=event.artifact_id,
            repository=event.full_repository,
            kind=event.kind.value,
            details=details,
        )

    async def _safe_emit(self, event: TriageEvent) -> None:
        """Emit an event, swallowing exceptions to avoid disrupting triage."""
        try:
            await self.event_emitter.emit(event)
        except Exception:
            logger.exception(
                "Failed to emit triage event",
                extra={
                    "event_type": event.event_type.value,
                    "artifact_id": event.artifact_id,
                },
            )
