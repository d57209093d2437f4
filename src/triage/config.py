"""Triage gate configuration.

Two layers:
- TriageSettings reads process settings from environment variables with
  the TRIAGE_ prefix (tokens, endpoints, server, simple overrides).
- TriageConfig is the read-only configuration handed to pipelines: label
  set, prompt and response templates, heuristic thresholds and diff depth
  presets. Defaults come from prompts.py; a YAML file named by
  TRIAGE_CONFIG_PATH can override any of it.

Pipelines validate the templates they need when they are constructed and
raise ConfigurationError, so a misconfigured deployment fails before any
stage runs.
"""

import logging
from typing import Any, Iterable, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.triage.analysis.changes import DEFAULT_DEPTH, DEPTH_PRESETS, DepthProfile
from src.triage.analysis.quality import QualityWeights
from src.triage.analysis.template import DEFAULT_CONFIDENCE_THRESHOLD
from src.triage.prompts import DEFAULT_PROMPTS, DEFAULT_RESPONSES


logger = logging.getLogger(__name__)


DEFAULT_LABELS = ("bug", "enhancement", "documentation", "question")


class ConfigurationError(ValueError):
    """Raised when required configuration is missing or invalid."""


def _split_csv(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class TriageSettings(BaseSettings):
    """Process settings from environment variables.

    All environment variables are prefixed with TRIAGE_ (e.g. TRIAGE_GITHUB_TOKEN).

    Required fields:
    - github_token: token used for repository reads and moderation actions
    - llm_url: OpenAI-compatible endpoint for the classifier oracle
    """

    model_config = SettingsConfigDict(
        env_prefix="TRIAGE_",
        case_sensitive=False,
    )

    # -------------------------------------------------------------------------
    # GitHub Configuration
    # -------------------------------------------------------------------------
    github_token: str

    # Supports GitHub Enterprise Server
    github_base_url: str = "https://api.github.com"

    # -------------------------------------------------------------------------
    # LLM Configuration
    # -------------------------------------------------------------------------
    llm_url: str

    llm_model: str = "openai/gpt-4o"

    # Falls back to github_token, which GitHub Models accepts
    llm_api_key: Optional[str] = None

    llm_temperature: float = 0.1

    llm_max_tokens: int = 1000

    llm_timeout_seconds: float = 30.0

    # -------------------------------------------------------------------------
    # Triage Configuration
    # -------------------------------------------------------------------------
    # Optional YAML file overriding prompts, responses and thresholds
    config_path: Optional[str] = None

    # Comma-separated label names, e.g. "bug,enhancement,question"
    labels: Optional[str] = None

    # Comma-separated GitHub logins whose artifacts are closed on sight
    blocklist: Optional[str] = None

    analysis_depth: Optional[str] = None

    analyze_file_changes: Optional[bool] = None

    lock_reason: Optional[str] = None

    # -------------------------------------------------------------------------
    # Server Configuration
    # -------------------------------------------------------------------------
    host: str = "0.0.0.0"

    port: int = 8080

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator("github_token")
    @classmethod
    def validate_github_token(cls, v: str) -> str:
        """Validate that GitHub token is not empty."""
        if not v or not v.strip():
            raise ValueError("github_token cannot be empty")
        return v

    @field_validator("llm_url")
    @classmethod
    def validate_llm_url(cls, v: str) -> str:
        """Validate that LLM URL is a valid URL format."""
        if not v or not v.strip():
            raise ValueError("llm_url cannot be empty")
        if not v.startswith(("http://", "https://")):
            raise ValueError("llm_url must start with http:// or https://")
        return v

    @field_validator("analysis_depth")
    @classmethod
    def validate_analysis_depth(cls, v: Optional[str]) -> Optional[str]:
        """Validate that the depth names a known preset."""
        if v is None:
            return v
        v = v.strip().lower()
        if v not in DEPTH_PRESETS:
            raise ValueError(
                f"analysis_depth must be one of {', '.join(DEPTH_PRESETS)}"
            )
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate that port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v


class TriageConfig(BaseModel):
    """Read-only triage configuration shared by all requests.

    Attributes:
        labels: Candidate labels in priority order, without duplicates.
        blocklist: Lower-cased logins whose artifacts are closed on sight.
        prompts: Oracle prompt templates by name.
        responses: Comment templates by name.
        needs_detail_keywords: A resolved label containing any of these
            runs the issue quality stage.
        template_confidence_threshold: Template detection threshold (0-100).
        quality_weights: Content quality scoring weights.
        depth_presets: Named diff depth profiles.
        analysis_depth: Active depth preset name.
        analyze_file_changes: Whether PR prompts include the diff summary.
        lock_reason: GitHub lock reason used when locking.
        close_reason: GitHub state_reason used when closing issues.
        unclear_no_answer_token: Reply meaning "the README has nothing
            relevant" for the unclear-issue answer prompt.
    """

    labels: list[str] = Field(default_factory=lambda: list(DEFAULT_LABELS))
    blocklist: list[str] = Field(default_factory=list)
    prompts: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_PROMPTS))
    responses: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_RESPONSES))
    needs_detail_keywords: list[str] = Field(
        default_factory=lambda: ["bug", "error", "fix"]
    )
    template_confidence_threshold: float = Field(
        default=DEFAULT_CONFIDENCE_THRESHOLD, ge=0.0, le=100.0
    )
    quality_weights: QualityWeights = Field(default_factory=QualityWeights)
    depth_presets: dict[str, DepthProfile] = Field(
        default_factory=lambda: dict(DEPTH_PRESETS)
    )
    analysis_depth: str = DEFAULT_DEPTH
    analyze_file_changes: bool = True
    lock_reason: str = "spam"
    close_reason: str = "not_planned"
    unclear_no_answer_token: str = "NO_ANSWER"

    @field_validator("labels")
    @classmethod
    def dedupe_labels(cls, v: list[str]) -> list[str]:
        """Strip labels and drop blanks and repeats, keeping first occurrence."""
        seen: set[str] = set()
        labels = []
        for label in v:
            label = label.strip()
            if label and label.lower() not in seen:
                seen.add(label.lower())
                labels.append(label)
        return labels

    @field_validator("blocklist")
    @classmethod
    def normalize_blocklist(cls, v: list[str]) -> list[str]:
        """Lower-case logins for case-insensitive matching."""
        return [user.strip().lower() for user in v if user.strip()]

    @property
    def depth_profile(self) -> DepthProfile:
        """The active diff depth profile.

        Raises:
            ConfigurationError: If analysis_depth names no preset.
        """
        try:
            return self.depth_presets[self.analysis_depth]
        except KeyError:
            raise ConfigurationError(
                f"Unknown analysis depth preset: {self.analysis_depth}"
            ) from None

    def is_blocked(self, author: str) -> bool:
        return bool(author) and author.strip().lower() in self.blocklist

    def needs_detail(self, label: Optional[str]) -> bool:
        """Whether a resolved label belongs to the needs-detail group."""
        if not label:
            return False
        key = label.lower()
        return any(keyword.lower() in key for keyword in self.needs_detail_keywords)

    def require(
        self,
        prompts: Iterable[str] = (),
        responses: Iterable[str] = (),
    ) -> None:
        """Check that the named templates are present and non-blank.

        Raises:
            ConfigurationError: Listing every missing template.
        """
        missing = [
            f"prompts.{name}"
            for name in prompts
            if not (self.prompts.get(name) or "").strip()
        ]
        missing += [
            f"responses.{name}"
            for name in responses
            if not (self.responses.get(name) or "").strip()
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required templates: {', '.join(missing)}"
            )


def _read_yaml(path: str) -> dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Configuration file not found: {path}") from None
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse YAML: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration file must contain a mapping")
    return data


def build_triage_config(overrides: Optional[dict[str, Any]] = None) -> TriageConfig:
    """Build a TriageConfig from defaults plus a mapping of overrides.

    prompts, responses and depth_presets are merged key by key; every
    other key replaces the default.

    Raises:
        ConfigurationError: If the result fails validation.
    """
    overrides = dict(overrides or {})

    prompts = dict(DEFAULT_PROMPTS)
    prompts.update(overrides.pop("prompts", None) or {})
    responses = dict(DEFAULT_RESPONSES)
    responses.update(overrides.pop("responses", None) or {})
    presets: dict[str, Any] = dict(DEPTH_PRESETS)
    presets.update(overrides.pop("depth_presets", None) or {})

    try:
        config = TriageConfig(
            prompts=prompts,
            responses=responses,
            depth_presets=presets,
            **overrides,
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid triage configuration: {e}") from e

    # Surface an unknown preset now rather than on the first pull request
    config.depth_profile
    return config


def load_triage_config(settings: TriageSettings) -> TriageConfig:
    """Load triage configuration from the YAML file and env overrides.

    Args:
        settings: Process settings.

    Returns:
        Validated TriageConfig.

    Raises:
        ConfigurationError: If the YAML file is unreadable or the merged
            configuration is invalid.
    """
    overrides: dict[str, Any] = {}
    if settings.config_path:
        overrides.update(_read_yaml(settings.config_path))
        logger.info("Loaded triage configuration file: %s", settings.config_path)

    if settings.labels:
        overrides["labels"] = _split_csv(settings.labels)
    if settings.blocklist:
        overrides["blocklist"] = _split_csv(settings.blocklist)
    if settings.analysis_depth:
        overrides["analysis_depth"] = settings.analysis_depth
    if settings.analyze_file_changes is not None:
        overrides["analyze_file_changes"] = settings.analyze_file_changes
    if settings.lock_reason:
        overrides["lock_reason"] = settings.lock_reason

    return build_triage_config(overrides)


def get_settings() -> TriageSettings:
    """Create and return TriageSettings from the environment.

    Raises:
        pydantic.ValidationError: If required fields are missing or invalid.
    """
    return TriageSettings()
