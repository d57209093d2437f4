"""Unit tests for file-change summaries, commit titles and prompt rendering."""

import pytest

from src.triage.analysis.changes import (
    DEPTH_PRESETS,
    DepthProfile,
    describe_file,
    summarize_file_changes,
)
from src.triage.github.models import FileChange
from src.triage.pipeline.commit import is_valid_commit_title
from src.triage.prompts import DEFAULT_PROMPTS, DEFAULT_RESPONSES, render


def _file(name, patch=None, additions=1, deletions=0, status="modified"):
    return FileChange(
        filename=name,
        status=status,
        additions=additions,
        deletions=deletions,
        patch=patch,
    )


PATCH = "\n".join(
    [
        "@@ -1,4 +1,6 @@",
        " context line",
        "+added one",
        "-removed one",
        "+added two",
        " more context",
        "+added three",
        "+added four",
    ]
)


# ---------------------------------------------------------------------------
# describe_file
# ---------------------------------------------------------------------------


def test_describe_file_header_only_without_patch():
    change = _file("src/app.py", additions=3, deletions=2, status="added")

    assert describe_file(change, 5) == "src/app.py(added,+3/-2)"


def test_describe_file_keeps_first_changed_lines():
    text = describe_file(_file("a.py", PATCH), 3)

    assert text.split("\n") == [
        "a.py(modified,+1/-0)",
        "+added one",
        "-removed one",
        "+added two",
        "...",
    ]


def test_describe_file_no_marker_when_all_lines_fit():
    text = describe_file(_file("a.py", PATCH), 10)

    assert not text.endswith("...")
    assert text.count("\n") == 5
    assert " context line" not in text


def test_describe_file_zero_lines_shows_header_only():
    assert describe_file(_file("a.py", PATCH), 0) == "a.py(modified,+1/-0)"


# ---------------------------------------------------------------------------
# summarize_file_changes
# ---------------------------------------------------------------------------


def test_no_files_gives_empty_summary():
    assert summarize_file_changes([], DEPTH_PRESETS["normal"]) == ""


def test_light_preset_truncates_files():
    files = [_file(f"file{i}.py") for i in range(7)]
    summary = summarize_file_changes(files, DEPTH_PRESETS["light"])

    assert summary.count("\n---\n") == 2
    assert "file2.py" in summary
    assert "file3.py" not in summary
    assert summary.endswith("... 4 more files not shown (total=7, shown=3)")


def test_custom_truncation_template():
    files = [_file(f"file{i}.py") for i in range(4)]
    summary = summarize_file_changes(
        files, DepthProfile(files=1, lines_per_file=0), "[{shown} of {total}]"
    )

    assert summary == "file0.py(modified,+1/-0)\n[1 of 4]"


def test_no_truncation_note_when_all_files_fit():
    files = [_file("a.py", PATCH), _file("b.py")]
    summary = summarize_file_changes(files, DEPTH_PRESETS["deep"])

    assert "more files not shown" not in summary
    assert summary.split("\n---\n")[1] == "b.py(modified,+1/-0)"


def test_depth_presets():
    assert DEPTH_PRESETS["light"] == DepthProfile(files=3, lines_per_file=3)
    assert DEPTH_PRESETS["normal"] == DepthProfile(files=5, lines_per_file=5)
    assert DEPTH_PRESETS["deep"] == DepthProfile(files=10, lines_per_file=10)


def test_depth_profile_requires_at_least_one_file():
    with pytest.raises(ValueError):
        DepthProfile(files=0, lines_per_file=3)


# ---------------------------------------------------------------------------
# Conventional Commits
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "title",
    [
        "fix: correct null check",
        "feat(parser): x",
        "FEAT: shout",
        "docs(readme): update install steps",
        "  chore: trim whitespace  ",
        "revert: undo last change",
    ],
)
def test_valid_commit_titles(title):
    assert is_valid_commit_title(title)


@pytest.mark.parametrize(
    "title",
    [
        "update stuff",
        "fix:missing space",
        "fix: ",
        "feature: not a known type",
        "fix(): empty scope",
        "",
        None,
    ],
)
def test_invalid_commit_titles(title):
    assert not is_valid_commit_title(title)


# ---------------------------------------------------------------------------
# render
# ---------------------------------------------------------------------------


def test_render_substitutes_known_placeholders():
    assert render("Hi {name}, {count} new", {"name": "Ada", "count": 3}) == (
        "Hi Ada, 3 new"
    )


def test_render_keeps_unknown_placeholders():
    assert render("{known} {unknown}", {"known": "x"}) == "x {unknown}"


def test_render_none_becomes_empty():
    assert render("[{value}]", {"value": None}) == "[]"


def test_render_does_not_rescan_substituted_text():
    result = render("{a} {b}", {"a": "{b}", "b": "B"})

    assert result == "{b} B"


def test_render_leaves_non_identifier_braces():
    assert render('{"json": {x}}', {"x": 1}) == '{"json": 1}'


def test_default_templates_present():
    for key in (
        "issue_spam",
        "readme_coverage",
        "readme_answer",
        "issue_classification",
        "issue_quality",
        "unclear_answer",
        "pr_spam",
        "pr_quality",
        "pr_classification",
    ):
        assert DEFAULT_PROMPTS[key].strip()

    assert "{readme_url}" in DEFAULT_RESPONSES["issue_closed"]
    assert DEFAULT_RESPONSES["no_file_changes"] == "No file changes found."
