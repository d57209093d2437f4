"""Unit tests for content quality scoring and the combined analysis."""

import pytest

from src.triage.analysis.models import (
    ExtractedContent,
    QualityLevel,
    TemplateAnalysis,
    TemplateType,
)
from src.triage.analysis.quality import (
    ContentQualityScorer,
    QualityWeights,
    analyze_content,
)
from src.triage.analysis.template import TemplateAnalyzer


FREEFORM_BODY = "x" * 60

TEMPLATED = TemplateAnalysis(
    has_template=True,
    template_type=TemplateType.GENERIC,
    confidence=80.0,
)


def _score(title, body, template=None, content=None, weights=None):
    scorer = ContentQualityScorer(weights)
    template = template or TemplateAnalysis()
    if content is None:
        content = ExtractedContent(user_content=body or "", is_empty=not body)
    return scorer.score(title, body, template, content)


# ---------------------------------------------------------------------------
# Title
# ---------------------------------------------------------------------------


def test_long_title_scores_higher_than_short():
    short = _score("Short", FREEFORM_BODY)
    long = _score("This is a long enough title", FREEFORM_BODY)

    # 50 - 10 + 20 vs 50 + 15 + 20
    assert short.score == 60.0
    assert long.score == 85.0
    assert short.reasons[0] == "Title too short"
    assert long.reasons[0] == "Good title length"


def test_title_of_exactly_min_length_is_short():
    assert _score("a" * 10, FREEFORM_BODY).reasons[0] == "Title too short"
    assert _score("a" * 11, FREEFORM_BODY).reasons[0] == "Good title length"


def test_missing_title_is_penalized():
    assert _score(None, FREEFORM_BODY).reasons[0] == "Title too short"


# ---------------------------------------------------------------------------
# Free-form bodies
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "body,expected_score,expected_reason",
    [
        ("x" * 51, 85.0, "Good free-form description"),
        ("x" * 50, 70.0, "Brief free-form description"),
        ("x" * 11, 70.0, "Brief free-form description"),
        ("x" * 10, 40.0, "Too short or empty content"),
        ("", 40.0, "Too short or empty content"),
        (None, 40.0, "Too short or empty content"),
    ],
)
def test_freeform_length_brackets(body, expected_score, expected_reason):
    result = _score("A descriptive title here", body)

    assert result.score == expected_score
    assert result.reasons[1] == expected_reason


def test_freeform_length_ignores_surrounding_whitespace():
    result = _score("A descriptive title here", "   " + "x" * 8 + "   ")

    assert result.reasons[1] == "Too short or empty content"


# ---------------------------------------------------------------------------
# Templated bodies
# ---------------------------------------------------------------------------


def test_well_filled_template():
    content = ExtractedContent(
        user_content="a: b\n\nc: d", is_empty=False, total_sections=3, valid_sections=2
    )
    result = _score("A descriptive title here", "ignored", TEMPLATED, content)

    assert result.score == 90.0
    assert result.level == QualityLevel.HIGH
    assert result.reasons[1] == "Template used and well filled"


def test_incomplete_template():
    content = ExtractedContent(
        user_content="a: b", is_empty=False, total_sections=3, valid_sections=1
    )
    result = _score("A descriptive title here", "ignored", TEMPLATED, content)

    assert result.score == 75.0
    assert result.reasons[1] == "Template used but incomplete"


def test_empty_template():
    content = ExtractedContent(is_empty=True, total_sections=3, valid_sections=0)
    result = _score("Short", "ignored", TEMPLATED, content)

    # 50 - 10 - 20
    assert result.score == 20.0
    assert result.level == QualityLevel.LOW
    assert result.reasons == ("Title too short", "Template used but empty")


# ---------------------------------------------------------------------------
# Levels, clamping and weights
# ---------------------------------------------------------------------------


def test_level_boundaries():
    assert _score("A descriptive title here", "x" * 11).level == QualityLevel.HIGH
    assert _score("Short", "x" * 51).level == QualityLevel.MEDIUM
    assert _score("Short", "").level == QualityLevel.LOW


def test_score_is_clamped():
    weights = QualityWeights(base_score=95.0)
    assert _score("A descriptive title here", "x" * 60, weights=weights).score == 100.0

    weights = QualityWeights(base_score=5.0)
    assert _score("Short", "", weights=weights).score == 0.0


def test_custom_weights_are_applied():
    weights = QualityWeights(title_min_length=3, title_bonus=1.0, freeform_detailed=0.0)
    result = _score("Four", "x" * 60, weights=weights)

    assert result.score == 51.0


# ---------------------------------------------------------------------------
# analyze_content
# ---------------------------------------------------------------------------


def test_analyze_content_bundles_results():
    body = "### Description\n\n_No response_\n\n### Steps to reproduce\n\n_No response_"
    analysis = analyze_content("Crash when saving", body)

    assert analysis.template.has_template is True
    assert analysis.content.is_empty is True
    assert analysis.quality.reasons[1] == "Template used but empty"
    assert analysis.report.startswith("Template Analysis:\n- Has template: Yes")
    assert "- Quality: 45/100 (medium)" in analysis.report
    assert analysis.report.endswith(
        "- Quality notes: Good title length, Template used but empty"
    )


def test_analyze_content_uses_supplied_analyzer():
    body = "## Notes\n" + "\n".join(["plain line"] * 9)

    default = analyze_content("Title", body)
    strict = analyze_content("Title", body, analyzer=TemplateAnalyzer(90))

    assert default.template.has_template is True
    assert strict.template.has_template is False
    assert strict.content.user_content == body
