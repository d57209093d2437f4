"""Content analysis models for the triage gate.

This module defines the data models produced by the heuristic analyzers:
- TemplateAnalysis: whether a body follows a structured authoring template
- ExtractedContent: the user-authored parts of a templated body
- QualityAnalysis: a completeness score for the submitted content

All models are frozen. They are derived once per triage request from the
artifact title and body and are never mutated afterwards.

The models use Pydantic for validation, consistent with the rest of the
package (pipeline/models.py, webhook/models.py, events/models.py).
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class TemplateType(str, Enum):
    """Kind of authoring template detected in an artifact body.

    Attributes:
        BUG_REPORT: A bug report template ("bug" appears in title or body).
        FEATURE_REQUEST: A feature request template ("feature" appears).
        GENERIC: A template was detected but its purpose is unclear.
        NONE: No template was detected.
    """

    BUG_REPORT = "bug_report"
    FEATURE_REQUEST = "feature_request"
    GENERIC = "generic"
    NONE = "none"


class QualityLevel(str, Enum):
    """Coarse bucket for a quality score."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TemplateSection(BaseModel):
    """One section of a templated body: a header line and the text under it."""

    model_config = ConfigDict(frozen=True)

    title: str
    content: str = ""


class TemplateAnalysis(BaseModel):
    """Result of template detection.

    Attributes:
        has_template: True when confidence exceeds the detection threshold.
        template_type: Inferred template kind, NONE when no template.
        confidence: Indicator density as a percentage (0-100).
        indicators: Human-readable list of the indicators that fired, in
            detection order.
        extracted_sections: Every section found by splitting the body at
            indicator lines, including empty ones. Empty when no template.
    """

    model_config = ConfigDict(frozen=True)

    has_template: bool = False
    template_type: TemplateType = TemplateType.NONE
    confidence: float = Field(default=0.0, ge=0.0, le=100.0)
    indicators: tuple[str, ...] = ()
    extracted_sections: tuple[TemplateSection, ...] = ()


class ExtractedContent(BaseModel):
    """User-authored content pulled out of a (possibly templated) body.

    For untemplated bodies user_content is the raw body and both section
    counters are zero.

    Attributes:
        user_content: Retained sections rendered as "title: content",
            separated by blank lines.
        is_empty: True when no meaningful content remains.
        total_sections: Number of sections detected in the body.
        valid_sections: Number of sections retained as non-empty.
        sections: The retained sections in body order.
    """

    model_config = ConfigDict(frozen=True)

    user_content: str = ""
    is_empty: bool = True
    total_sections: int = Field(default=0, ge=0)
    valid_sections: int = Field(default=0, ge=0)
    sections: tuple[TemplateSection, ...] = ()


class QualityAnalysis(BaseModel):
    """Completeness score for an artifact.

    reasons records which scoring branches fired. It is informational and
    never drives decisions.
    """

    model_config = ConfigDict(frozen=True)

    score: float = Field(..., ge=0.0, le=100.0)
    level: QualityLevel
    reasons: tuple[str, ...] = ()


class ContentAnalysis(BaseModel):
    """Bundle of all heuristic results for one artifact.

    Attributes:
        template: Template detection result.
        content: Extracted user content.
        quality: Quality score.
        report: Plain-text summary embedded in oracle prompts.
    """

    model_config = ConfigDict(frozen=True)

    template: TemplateAnalysis
    content: ExtractedContent
    quality: QualityAnalysis
    report: str = ""
