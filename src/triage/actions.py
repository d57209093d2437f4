"""Moderation actions applied after a triage decision.

An ActionPlan describes the side effects a terminal decision selects:
an optional comment, close, lock and label. run_action_plan() issues them
through an ActionExecutor in the fixed order comment, close, lock, label.

Each call is attempted independently. A failing call is logged and
recorded as a PlatformActionError in its ActionOutcome; the remaining
calls are still attempted. There is no rollback, so a comment may be
posted even though the following close failed.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol

from pydantic import BaseModel, ConfigDict

from src.triage.github.client import GitHubClient


logger = logging.getLogger(__name__)


class ActionType(str, Enum):
    """Side-effecting calls an action plan can issue."""

    COMMENT = "comment"
    CLOSE = "close"
    LOCK = "lock"
    LABEL = "label"


class PlatformActionError(Exception):
    """Raised or recorded when a single platform call fails.

    Attributes:
        action: The action that failed.
        message: Human-readable error description.
        cause: The underlying exception, if any.
    """

    def __init__(
        self,
        action: ActionType,
        message: str,
        cause: Optional[BaseException] = None,
    ):
        self.action = action
        self.message = message
        self.cause = cause
        super().__init__(f"{action.value} failed: {message}")


class ActionPlan(BaseModel):
    """Side effects selected by a decision.

    Attributes:
        comment: Comment text to post, if any.
        close: Whether to close the artifact.
        lock: Whether to lock the conversation.
        label: Label to apply, if any.
        close_reason: Reason passed to close().
        lock_reason: Reason passed to lock().
    """

    model_config = ConfigDict(frozen=True)

    comment: Optional[str] = None
    close: bool = False
    lock: bool = False
    label: Optional[str] = None
    close_reason: str = "not_planned"
    lock_reason: str = "spam"

    @property
    def is_empty(self) -> bool:
        return not (self.comment or self.close or self.lock or self.label)


@dataclass(frozen=True)
class ActionOutcome:
    """Result of one platform call."""

    action: ActionType
    succeeded: bool
    error: Optional[PlatformActionError] = None


class ActionExecutor(Protocol):
    """Platform operations on a single artifact."""

    async def comment(self, text: str) -> None: ...

    async def close(self, reason: str) -> None: ...

    async def lock(self, reason: str) -> None: ...

    async def add_label(self, name: str) -> None: ...


async def _attempt(
    action: ActionType,
    call: Callable[[], Awaitable[None]],
    artifact_id: str,
) -> ActionOutcome:
    try:
        await call()
    except Exception as e:
        error = PlatformActionError(action, str(e) or type(e).__name__, cause=e)
        logger.warning(
            "Platform action failed",
            extra={
                "artifact_id": artifact_id,
                "action": action.value,
                "error": str(e),
            },
        )
        return ActionOutcome(action=action, succeeded=False, error=error)
    return ActionOutcome(action=action, succeeded=True)


async def run_action_plan(
    executor: ActionExecutor,
    plan: ActionPlan,
    artifact_id: str = "",
) -> list[ActionOutcome]:
    """Issue the calls in a plan in order, recording each outcome.

    Args:
        executor: Platform operations for the artifact.
        plan: The actions to apply.
        artifact_id: Identifier used in log records.

    Returns:
        One ActionOutcome per attempted call, in issue order.
    """
    outcomes: list[ActionOutcome] = []

    if plan.comment:
        comment = plan.comment
        outcomes.append(
            await _attempt(
                ActionType.COMMENT, lambda: executor.comment(comment), artifact_id
            )
        )
    if plan.close:
        outcomes.append(
            await _attempt(
                ActionType.CLOSE,
                lambda: executor.close(plan.close_reason),
                artifact_id,
            )
        )
    if plan.lock:
        outcomes.append(
            await _attempt(
                ActionType.LOCK, lambda: executor.lock(plan.lock_reason), artifact_id
            )
        )
    if plan.label:
        label = plan.label
        outcomes.append(
            await _attempt(
                ActionType.LABEL, lambda: executor.add_label(label), artifact_id
            )
        )

    logger.info(
        "Action plan applied",
        extra={
            "artifact_id": artifact_id,
            "attempted": len(outcomes),
            "failed": sum(1 for outcome in outcomes if not outcome.succeeded),
        },
    )
    return outcomes


class GitHubActionExecutor:
    """ActionExecutor backed by the GitHub REST API.

    Pull requests share the issues API for comments, labels and locks;
    only closing differs.
    """

    def __init__(
        self,
        client: GitHubClient,
        owner: str,
        repo: str,
        number: int,
        pull_request: bool = False,
    ):
        self.client = client
        self.owner = owner
        self.repo = repo
        self.number = number
        self.pull_request = pull_request

    async def comment(self, text: str) -> None:
        await self.client.create_comment(self.owner, self.repo, self.number, text)

    async def close(self, reason: str) -> None:
        if self.pull_request:
            await self.client.close_pull_request(self.owner, self.repo, self.number)
        else:
            await self.client.close_issue(
                self.owner, self.repo, self.number, state_reason=reason
            )

    async def lock(self, reason: str) -> None:
        await self.client.lock_issue(
            self.owner, self.repo, self.number, lock_reason=reason
        )

    async def add_label(self, name: str) -> None:
        await self.client.add_label(self.owner, self.repo, self.number, name)
