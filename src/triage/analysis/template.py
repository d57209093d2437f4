"""Template detection and user-content extraction.

GitHub issue forms and markdown templates leave a lot of scaffolding in an
artifact body: headers, HTML comments, checkboxes, placeholder text such as
``_No response_``. This module detects that scaffolding and pulls out what
the author actually wrote, so downstream stages judge the user's words
rather than the template's.

Detection is a density heuristic: every indicator occurrence counts, a
recognised title prefix counts double, and two or more well-known template
field names (English or Chinese) add one per field. Confidence is the
indicator count relative to one indicator per five lines, capped at 100.
"""

import logging
import re
from typing import Optional

from src.triage.analysis.models import (
    ExtractedContent,
    TemplateAnalysis,
    TemplateSection,
    TemplateType,
)


logger = logging.getLogger(__name__)


DEFAULT_CONFIDENCE_THRESHOLD = 30.0

TITLE_PREFIXES = (
    "[BUG]",
    "[FEATURE]",
    "[Feature Request]",
    "[Bug Report]",
    "[ENHANCEMENT]",
    "[QUESTION]",
)

TITLE_PREFIX_WEIGHT = 2

# Name, pattern. Patterns are matched per line (MULTILINE) and every
# occurrence counts towards the indicator total.
TEMPLATE_INDICATORS: tuple[tuple[str, re.Pattern], ...] = (
    ("markdown header", re.compile(r"^\s{0,3}#{1,6}\s+\S.*$", re.MULTILINE)),
    ("bold header", re.compile(r"\*\*[^*\n]+\*\*")),
    ("html comment", re.compile(r"<!--.+?-->")),
    ("checkbox", re.compile(r"^\s*[-*]\s*\[[ xX]\]", re.MULTILINE)),
    ("blockquote", re.compile(r"^>\s*\S.*$", re.MULTILINE)),
    ("table row", re.compile(r"^\s*\|.*\|\s*$", re.MULTILINE)),
)

COMMON_FIELDS = (
    "description",
    "expected behavior",
    "actual behavior",
    "steps to reproduce",
    "environment",
    "version",
    "browser",
    "additional context",
    "screenshots",
    "描述",
    "预期行为",
    "实际行为",
    "复现步骤",
    "环境信息",
    "版本",
    "浏览器",
    "附加信息",
    "截图",
    "bug描述",
    "功能描述",
    "如何实现",
    "自查",
    "确认",
)

MIN_COMMON_FIELDS = 2

EMPTY_PATTERNS = (
    re.compile(r"^_No response_$", re.IGNORECASE),
    re.compile(r"^N/A$", re.IGNORECASE),
    re.compile(r"^None$", re.IGNORECASE),
    re.compile(r"^无$"),
    re.compile(r"^没有$"),
    re.compile(r"^暂无$"),
    re.compile(r"^\.+$"),
    re.compile(r"^-+$"),
    re.compile(r"^#+$"),
)

_CHECKBOX = re.compile(r"\[[\sxX]?\]")
_MARKUP = re.compile(r"[-_*#>|\s]")
_HEADER_MARKS = re.compile(r"[#*>]")

MIN_MEANINGFUL_CHARS = 3


def is_empty_content(content: Optional[str]) -> bool:
    """Check whether a section's content carries no real information.

    Content is empty when it is blank, matches a known placeholder
    (``_No response_``, ``N/A``, ``None``, ``无`` ...), or has fewer than
    three characters left once checkbox, table and markdown syntax is
    stripped.

    Args:
        content: Section text.

    Returns:
        True if the content should be treated as unfilled.
    """
    if not content or not content.strip():
        return True

    stripped = content.strip()
    for pattern in EMPTY_PATTERNS:
        if pattern.match(stripped):
            return True

    meaningful = _MARKUP.sub("", _CHECKBOX.sub("", stripped))
    return len(meaningful) < MIN_MEANINGFUL_CHARS


def is_indicator_line(line: str) -> bool:
    """Return True if a single line matches any template indicator."""
    return any(pattern.search(line) for _, pattern in TEMPLATE_INDICATORS)


def split_sections(body: str) -> list[TemplateSection]:
    """Split a body into sections at indicator lines.

    Text before the first indicator line belongs to no section and is
    dropped. Section titles are the header line with ``#``, ``*`` and
    ``>`` removed.
    """
    sections: list[TemplateSection] = []
    current_title: Optional[str] = None
    current_lines: list[str] = []

    for line in body.split("\n"):
        if is_indicator_line(line):
            if current_title is not None:
                sections.append(
                    TemplateSection(
                        title=current_title,
                        content="\n".join(current_lines).strip(),
                    )
                )
            current_title = _HEADER_MARKS.sub("", line).strip()
            current_lines = []
        else:
            current_lines.append(line)

    if current_title is not None:
        sections.append(
            TemplateSection(
                title=current_title,
                content="\n".join(current_lines).strip(),
            )
        )

    return sections


class TemplateAnalyzer:
    """Detects authoring templates and extracts user-written content.

    Attributes:
        confidence_threshold: Confidence (0-100) above which a body is
            considered templated.
    """

    def __init__(self, confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD):
        self.confidence_threshold = confidence_threshold

    def detect_template(self, title: str, body: Optional[str]) -> TemplateAnalysis:
        """Detect whether an artifact follows a structured template.

        Args:
            title: Artifact title.
            body: Artifact body, may be None or empty.

        Returns:
            TemplateAnalysis with confidence in [0, 100].
        """
        if not body or not body.strip():
            return TemplateAnalysis()

        title = title or ""
        indicators: list[str] = []
        indicator_count = 0
        total_lines = len(body.split("\n"))

        title_lower = title.lower()
        for prefix in TITLE_PREFIXES:
            if prefix.lower() in title_lower:
                indicators.append(f"Title prefix: {prefix}")
                indicator_count += TITLE_PREFIX_WEIGHT
                break

        for name, pattern in TEMPLATE_INDICATORS:
            matches = pattern.findall(body)
            if matches:
                indicators.append(f"Template pattern: {name} ({len(matches)}x)")
                indicator_count += len(matches)

        body_lower = body.lower()
        field_count = sum(1 for field in COMMON_FIELDS if field in body_lower)
        if field_count >= MIN_COMMON_FIELDS:
            indicators.append(f"Found {field_count} template fields")
            indicator_count += field_count

        confidence = min(
            100.0, indicator_count / max(total_lines / 5, 1) * 100
        )
        has_template = confidence > self.confidence_threshold

        if not has_template:
            return TemplateAnalysis(
                has_template=False,
                template_type=TemplateType.NONE,
                confidence=confidence,
                indicators=tuple(indicators),
            )

        if "bug" in title_lower or "bug" in body_lower:
            template_type = TemplateType.BUG_REPORT
        elif "feature" in title_lower or "feature" in body_lower:
            template_type = TemplateType.FEATURE_REQUEST
        else:
            template_type = TemplateType.GENERIC

        logger.debug(
            "Template detected",
            extra={
                "template_type": template_type.value,
                "confidence": confidence,
                "indicator_count": indicator_count,
            },
        )

        return TemplateAnalysis(
            has_template=True,
            template_type=template_type,
            confidence=confidence,
            indicators=tuple(indicators),
            extracted_sections=tuple(split_sections(body)),
        )

    def extract_user_content(
        self,
        body: Optional[str],
        template: TemplateAnalysis,
    ) -> ExtractedContent:
        """Extract the user-written parts of a body.

        Untemplated bodies are returned unchanged. Templated bodies are
        split into sections and only sections with meaningful content are
        kept.

        Args:
            body: Artifact body.
            template: Result of detect_template for the same body.

        Returns:
            ExtractedContent describing what the author actually wrote.
        """
        body = body or ""
        if not template.has_template:
            return ExtractedContent(
                user_content=body,
                is_empty=not body.strip(),
            )

        sections = list(template.extracted_sections) or split_sections(body)
        retained = [s for s in sections if not is_empty_content(s.content)]
        user_content = "\n\n".join(f"{s.title}: {s.content}" for s in retained)

        return ExtractedContent(
            user_content=user_content,
            is_empty=not retained,
            total_sections=len(sections),
            valid_sections=len(retained),
            sections=tuple(retained),
        )


def generate_analysis_report(
    template: TemplateAnalysis,
    content: ExtractedContent,
) -> str:
    """Render a short plain-text template report for oracle prompts."""
    lines = [
        "Template Analysis:",
        f"- Has template: {'Yes' if template.has_template else 'No'}",
    ]

    if template.has_template:
        lines.append(f"- Type: {template.template_type.value}")
        lines.append(f"- Confidence: {template.confidence:.1f}%")
        lines.append(f"- Indicators: {', '.join(template.indicators)}")
        lines.append(
            f"- Valid sections: {content.valid_sections}/{content.total_sections}"
        )
        lines.append(f"- Content: {'Empty' if content.is_empty else 'Has content'}")

    return "\n".join(lines)
