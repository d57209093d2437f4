"""Bounded pull request file-change summaries.

Spam and quality prompts for pull requests include a compact view of the
diff. The view is bounded by a DepthProfile: at most ``files`` files, and
for each file at most ``lines_per_file`` added/removed lines. When more
files changed than the cap allows, a truncation note states the true total.
"""

from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from src.triage.github.models import FileChange
from src.triage.prompts import DEFAULT_RESPONSES, render


class DepthProfile(BaseModel):
    """How much of a diff to show the oracle."""

    model_config = ConfigDict(frozen=True)

    files: int = Field(..., ge=1)
    lines_per_file: int = Field(..., ge=0)


DEPTH_PRESETS: dict[str, DepthProfile] = {
    "light": DepthProfile(files=3, lines_per_file=3),
    "normal": DepthProfile(files=5, lines_per_file=5),
    "deep": DepthProfile(files=10, lines_per_file=10),
}

DEFAULT_DEPTH = "normal"


def _changed_lines(patch: str) -> list[str]:
    return [line for line in patch.split("\n") if line.startswith(("+", "-"))]


def describe_file(change: FileChange, lines_per_file: int) -> str:
    """Render one file as a header plus its first changed lines."""
    text = (
        f"{change.filename}({change.status},"
        f"+{change.additions}/-{change.deletions})"
    )
    if not change.patch or lines_per_file <= 0:
        return text

    changed = _changed_lines(change.patch)
    kept = changed[:lines_per_file]
    if kept:
        text += "\n" + "\n".join(kept)
        if len(changed) > lines_per_file:
            text += "\n..."
    return text


def summarize_file_changes(
    files: Sequence[FileChange],
    profile: DepthProfile,
    truncation_template: Optional[str] = None,
) -> str:
    """Summarize a pull request diff within a depth profile.

    Args:
        files: Changed files in the order GitHub returned them.
        profile: File and line caps.
        truncation_template: Template for the truncation note, with
            ``{total}``, ``{shown}`` and ``{hidden}`` placeholders.

    Returns:
        Summary text, empty when there are no files.
    """
    if not files:
        return ""

    shown = list(files[: profile.files])
    summary = "\n---\n".join(
        describe_file(change, profile.lines_per_file) for change in shown
    )

    if len(files) > len(shown):
        template = truncation_template or DEFAULT_RESPONSES["file_changes_truncated"]
        summary += "\n" + render(
            template,
            {
                "total": len(files),
                "shown": len(shown),
                "hidden": len(files) - len(shown),
            },
        )

    return summary
