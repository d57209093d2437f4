"""Heuristic content analysis for submitted issues and pull requests.

This module inspects artifact text without calling any model:
- Template detection (markdown headers, checkboxes, issue-form fields)
- Extraction of user-written content from templated bodies
- Completeness scoring of the extracted content
- Bounded summaries of pull request file changes
"""

from src.triage.analysis.changes import (
    DEFAULT_DEPTH,
    DEPTH_PRESETS,
    DepthProfile,
    describe_file,
    summarize_file_changes,
)
from src.triage.analysis.models import (
    ContentAnalysis,
    ExtractedContent,
    QualityAnalysis,
    QualityLevel,
    TemplateAnalysis,
    TemplateSection,
    TemplateType,
)
from src.triage.analysis.quality import (
    ContentQualityScorer,
    QualityWeights,
    analyze_content,
)
from src.triage.analysis.template import (
    TemplateAnalyzer,
    generate_analysis_report,
    is_empty_content,
)

__all__ = [
    "DEFAULT_DEPTH",
    "DEPTH_PRESETS",
    "DepthProfile",
    "describe_file",
    "summarize_file_changes",
    "analyze_content",
    "ContentAnalysis",
    "ContentQualityScorer",
    "ExtractedContent",
    "generate_analysis_report",
    "is_empty_content",
    "QualityAnalysis",
    "QualityLevel",
    "QualityWeights",
    "TemplateAnalysis",
    "TemplateAnalyzer",
    "TemplateSection",
    "TemplateType",
]
