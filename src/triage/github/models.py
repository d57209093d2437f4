"""GitHub data records consumed by the triage gate.

These are the repository-data shapes the GitHub client returns: pull
request file diffs and pinned issues.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FileChange(BaseModel):
    """One changed file in a pull request.

    Attributes:
        filename: Path of the file in the repository.
        status: GitHub change status (added, modified, removed, renamed...).
        additions: Number of added lines.
        deletions: Number of deleted lines.
        patch: Unified diff hunk text, absent for binary or huge files.
    """

    model_config = ConfigDict(frozen=True)

    filename: str
    status: str = "modified"
    additions: int = Field(default=0, ge=0)
    deletions: int = Field(default=0, ge=0)
    patch: Optional[str] = None


class PinnedIssue(BaseModel):
    """A pinned issue, used as extra context for README coverage checks."""

    model_config = ConfigDict(frozen=True)

    number: int
    title: str
    body: str = ""


def format_pinned_issues(issues: list[PinnedIssue]) -> str:
    """Render pinned issues as markdown blocks for prompt context."""
    return "\n\n".join(f"### {issue.title}\n{issue.body}".strip() for issue in issues)
