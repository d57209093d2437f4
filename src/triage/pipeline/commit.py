"""Conventional Commits title check for pull requests."""

import re


CONVENTIONAL_TYPES = (
    "feat",
    "fix",
    "docs",
    "style",
    "refactor",
    "perf",
    "test",
    "chore",
    "ci",
    "build",
    "revert",
)

CONVENTIONAL_COMMIT_PATTERN = re.compile(
    rf"^({'|'.join(CONVENTIONAL_TYPES)})(\(.+\))?: .+$",
    re.IGNORECASE,
)


def is_valid_commit_title(title: str) -> bool:
    """Check a title against ``type(scope)?: description``.

    >>> is_valid_commit_title("fix: correct null check")
    True
    >>> is_valid_commit_title("update stuff")
    False
    """
    return bool(CONVENTIONAL_COMMIT_PATTERN.match((title or "").strip()))
