"""Content quality scoring.

Scores an artifact for completeness from its title and body, using the
template analysis to decide how the body is judged: templated bodies are
scored on how many sections were actually filled in, free-form bodies on
their length.

The weights are unvalidated heuristics and are exposed through
QualityWeights so deployments can tune them.
"""

import logging
from typing import Optional

from pydantic import BaseModel, Field

from src.triage.analysis.models import (
    ContentAnalysis,
    ExtractedContent,
    QualityAnalysis,
    QualityLevel,
    TemplateAnalysis,
)
from src.triage.analysis.template import TemplateAnalyzer, generate_analysis_report


logger = logging.getLogger(__name__)


class QualityWeights(BaseModel):
    """Tunable weights for ContentQualityScorer.

    Defaults reproduce the stock scoring: base 50, +15/-10 for the title,
    +25/+10/-20 for templated bodies and +20/+5/-25 for free-form bodies.
    """

    base_score: float = 50.0

    title_min_length: int = Field(default=10, ge=0)
    title_bonus: float = 15.0
    title_penalty: float = -10.0

    well_filled_min_sections: int = Field(default=2, ge=1)
    template_well_filled: float = 25.0
    template_incomplete: float = 10.0
    template_empty: float = -20.0

    freeform_detailed_length: int = Field(default=50, ge=0)
    freeform_brief_length: int = Field(default=10, ge=0)
    freeform_detailed: float = 20.0
    freeform_brief: float = 5.0
    freeform_empty: float = -25.0

    high_threshold: float = 70.0
    medium_threshold: float = 40.0


class ContentQualityScorer:
    """Scores extracted content for completeness."""

    def __init__(self, weights: Optional[QualityWeights] = None):
        self.weights = weights or QualityWeights()

    def score(
        self,
        title: Optional[str],
        body: Optional[str],
        template: TemplateAnalysis,
        content: ExtractedContent,
    ) -> QualityAnalysis:
        """Score an artifact.

        Args:
            title: Artifact title.
            body: Raw artifact body.
            template: Template detection result for the body.
            content: Extracted content for the body.

        Returns:
            QualityAnalysis with the score clamped to [0, 100].
        """
        w = self.weights
        score = w.base_score
        reasons: list[str] = []

        if title and len(title.strip()) > w.title_min_length:
            score += w.title_bonus
            reasons.append("Good title length")
        else:
            score += w.title_penalty
            reasons.append("Title too short")

        if template.has_template:
            if not content.is_empty and content.valid_sections >= w.well_filled_min_sections:
                score += w.template_well_filled
                reasons.append("Template used and well filled")
            elif not content.is_empty:
                score += w.template_incomplete
                reasons.append("Template used but incomplete")
            else:
                score += w.template_empty
                reasons.append("Template used but empty")
        else:
            body_length = len(body.strip()) if body else 0
            if body_length > w.freeform_detailed_length:
                score += w.freeform_detailed
                reasons.append("Good free-form description")
            elif body_length > w.freeform_brief_length:
                score += w.freeform_brief
                reasons.append("Brief free-form description")
            else:
                score += w.freeform_empty
                reasons.append("Too short or empty content")

        score = max(0.0, min(100.0, score))

        if score >= w.high_threshold:
            level = QualityLevel.HIGH
        elif score >= w.medium_threshold:
            level = QualityLevel.MEDIUM
        else:
            level = QualityLevel.LOW

        return QualityAnalysis(score=score, level=level, reasons=tuple(reasons))


def analyze_content(
    title: str,
    body: Optional[str],
    analyzer: Optional[TemplateAnalyzer] = None,
    scorer: Optional[ContentQualityScorer] = None,
) -> ContentAnalysis:
    """Run template detection, extraction and scoring in one pass.

    Args:
        title: Artifact title.
        body: Artifact body.
        analyzer: Template analyzer, a default one when None.
        scorer: Quality scorer, a default one when None.

    Returns:
        ContentAnalysis including the plain-text report used in prompts.
    """
    analyzer = analyzer or TemplateAnalyzer()
    scorer = scorer or ContentQualityScorer()

    template = analyzer.detect_template(title, body)
    content = analyzer.extract_user_content(body, template)
    quality = scorer.score(title, body, template, content)

    report = "\n".join(
        [
            generate_analysis_report(template, content),
            f"- Quality: {quality.score:.0f}/100 ({quality.level.value})",
            f"- Quality notes: {', '.join(quality.reasons)}",
        ]
    )

    logger.debug(
        "Content analyzed",
        extra={
            "has_template": template.has_template,
            "confidence": template.confidence,
            "quality_score": quality.score,
            "quality_level": quality.level.value,
        },
    )

    return ContentAnalysis(
        template=template,
        content=content,
        quality=quality,
        report=report,
    )
