"""Unit and property tests for label resolution."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from src.triage.classifier.resolver import resolve_label


DEFAULT_LABELS = ["bug", "enhancement", "documentation", "question"]


@pytest.mark.parametrize(
    "answer,labels,expected",
    [
        # Exact, case-insensitive
        ("BUG", ["bug", "enhancement"], "bug"),
        ("  Enhancement \n", ["bug", "enhancement"], "enhancement"),
        # Answer contains a label
        ("bugfix please", ["bug", "enhancement"], "bug"),
        ("This is a question about setup", DEFAULT_LABELS, "question"),
        # Label contains the answer
        ("doc", ["bug", "documentation"], "documentation"),
        # Alias groups
        ("error in code", ["defect", "bug-report"], "bug-report"),
        ("improve startup", DEFAULT_LABELS, "enhancement"),
        ("new feature", ["bug", "feature-request"], "feature-request"),
        ("readme", ["bug", "documentation"], "documentation"),
        ("need help", ["bug", "question"], "question"),
        # Nothing matches
        ("xyz", ["bug", "enhancement"], None),
        ("help", ["bug", "enhancement"], None),
    ],
)
def test_resolution_rules(answer, labels, expected):
    assert resolve_label(answer, labels) == expected


def test_exact_match_beats_substring():
    # "bugfix" contains "bug" and would win rule 3, but exact equality is first
    assert resolve_label("bug", ["bugfix", "bug"]) == "bug"


def test_answer_contains_label_beats_label_contains_answer():
    assert resolve_label("feature", ["new feature request", "feat"]) == "feat"


def test_configuration_order_breaks_ties():
    assert resolve_label("bug and enhancement", ["enhancement", "bug"]) == "enhancement"
    assert resolve_label("bug and enhancement", ["bug", "enhancement"]) == "bug"


def test_alias_groups_apply_in_fixed_order():
    # "improve the docs" hits both the enhancement and doc groups
    assert resolve_label("improve the docs", DEFAULT_LABELS) == "enhancement"


def test_label_returned_as_configured():
    assert resolve_label("ENHANCEMENT", ["Enhancement"]) == "Enhancement"


@pytest.mark.parametrize("answer", [None, "", "   \n"])
def test_blank_answer_resolves_to_none(answer):
    assert resolve_label(answer, DEFAULT_LABELS) is None


def test_blank_labels_are_skipped():
    assert resolve_label("some bug", ["", "   ", "bug"]) == "bug"


def test_no_labels_resolves_to_none():
    assert resolve_label("bug", []) is None


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


label_sets = st.lists(
    st.text(alphabet="abcdefghijklmnopqrstuvwxyz-", min_size=1, max_size=15),
    min_size=0,
    max_size=6,
)


@given(answer=st.text(max_size=40), labels=label_sets)
@settings(max_examples=100)
def test_result_is_one_of_the_labels(answer, labels):
    result = resolve_label(answer, labels)

    assert result is None or result in labels


@given(answer=st.text(max_size=40), labels=label_sets)
@settings(max_examples=100)
def test_resolution_is_deterministic(answer, labels):
    assert resolve_label(answer, labels) == resolve_label(answer, list(labels))


@given(labels=label_sets)
@settings(max_examples=100)
def test_every_label_resolves_to_an_equal_label(labels):
    for label in labels:
        result = resolve_label(label, labels)
        assert result is not None
        assert result.strip().lower() == label.strip().lower()
