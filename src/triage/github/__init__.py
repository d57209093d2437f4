"""GitHub API integration for the triage gate.

This module provides:
- GitHubClient for repository reads and moderation actions
- GitHubAPIError for failed API requests
- Records for pull request file changes and pinned issues
"""

from src.triage.github.client import GitHubAPIError, GitHubClient
from src.triage.github.models import FileChange, PinnedIssue, format_pinned_issues

__all__ = [
    "FileChange",
    "format_pinned_issues",
    "GitHubAPIError",
    "GitHubClient",
    "PinnedIssue",
]
