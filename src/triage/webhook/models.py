"""GitHub webhook event models for the triage gate.

Only newly opened issues and pull requests are triaged. Both arrive as
an ArtifactEvent carrying the fields the pipelines need.
"""

from enum import Enum

from pydantic import BaseModel, Field

from src.triage.pipeline.models import ArtifactKind


class ArtifactAction(str, Enum):
    """Webhook actions the gate reacts to.

    Attributes:
        OPENED: A new issue or pull request was created.
    """

    OPENED = "opened"


class ArtifactEvent(BaseModel):
    """Parsed issue or pull request webhook event.

    Attributes:
        kind: Issue or pull request.
        action: The webhook action.
        number: Issue or pull request number within the repository.
        title: Title text.
        body: Body text, empty when the author left it blank.
        author: Login of the author.
        repository: Repository name without owner prefix.
        owner: Repository owner (user or organization).
    """

    kind: ArtifactKind

    action: ArtifactAction = ArtifactAction.OPENED

    number: int = Field(
        ...,
        gt=0,
        description="Issue or pull request number (positive integer)",
    )

    title: str = Field(
        ...,
        min_length=1,
        description="Title text (cannot be empty)",
    )

    body: str = Field(
        default="",
        description="Body text (may be empty)",
    )

    author: str = Field(
        ...,
        min_length=1,
        description="GitHub login of the author",
    )

    repository: str = Field(
        ...,
        min_length=1,
        description="Repository name without owner prefix",
    )

    owner: str = Field(
        ...,
        min_length=1,
        description="Repository owner (user or organization)",
    )

    @property
    def artifact_id(self) -> str:
        """Identifier in format "{owner}/{repository}#{number}"."""
        return f"{self.owner}/{self.repository}#{self.number}"

    @property
    def full_repository(self) -> str:
        """Repository path in format "{owner}/{repository}"."""
        return f"{self.owner}/{self.repository}"
