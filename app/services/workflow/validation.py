"""Template validation and generated-content quality checks."""

import re
from dataclasses import dataclass, field

from app.config.template import ContentTemplate
from app.core.exceptions import ContentValidationError
from app.core.logging import get_logger
from app.services.workflow.context import Outline
from app.services.workflow.shortcode import split_ideas

logger = get_logger(__name__)

MIN_SCRIPT_LENGTH = 100
MAX_SCRIPT_LENGTH = 10000
MIN_TITLE_LENGTH = 5
MAX_TITLE_LENGTH = 100
PASSING_SCORE = 70

_PLACEHOLDER_PATTERN = re.compile(
    r"\b(undefined|null|lorem ipsum)\b|\[(insert|placeholder)[^\]]*\]|\{\{\w+\}\}",
    re.IGNORECASE,
)


@dataclass
class ValidationResult:
    """Outcome of template validation.

    Attributes:
        errors: Problems that prevent a run
        warnings: Problems worth reporting that do not prevent a run
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """Whether the template can be used for a run."""
        return not self.errors


@dataclass
class QualityReport:
    """Scored quality assessment of generated content."""

    score: int = 100
    issues: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        """Whether the score reaches the passing threshold."""
        return self.score >= PASSING_SCORE


def validate_template(template: ContentTemplate) -> ValidationResult:
    """Check a template before a run.

    Args:
        template: Content template

    Returns:
        ValidationResult with errors and warnings
    """
    result = ValidationResult()

    if not template.ideas_list.strip():
        result.errors.append("Ideas list is required")
    if not template.outline_prompt:
        result.errors.append("Outline prompt is required")
    if not template.script_prompt:
        result.errors.append("Script prompt is required")
    if not template.chapter_image_prompt:
        result.errors.append("Chapter image prompt is required")

    ideas = split_ideas(template.ideas_list, template.ideas_delimiter)
    if template.ideas_list.strip() and len(ideas) < 2:
        result.warnings.append("Ideas list should contain at least 2 ideas")
    if len(ideas) > 20:
        result.warnings.append("Ideas list is very long, consider splitting the template")
    if not 3 <= template.image_count <= 20:
        result.warnings.append("Image count should be between 3 and 20")
    if not template.audio_voices:
        result.warnings.append("No audio voices configured, the default voice will be used")

    return result


def ensure_valid_template(template: ContentTemplate) -> list[str]:
    """Validate a template, raising on errors.

    Args:
        template: Content template

    Returns:
        Validation warnings

    Raises:
        ContentValidationError: If required fields are missing
    """
    result = validate_template(template)
    if not result.is_valid:
        raise ContentValidationError(
            f"Template '{template.id}' is invalid: {'; '.join(result.errors)}",
            validation_errors=result.errors,
            content_type="template",
        )
    for warning in result.warnings:
        logger.warning("Template validation warning", template_id=template.id, warning=warning)
    return result.warnings


def has_placeholder_text(text: str) -> bool:
    """Detect leftover placeholder tokens in generated text."""
    return _PLACEHOLDER_PATTERN.search(text) is not None


def is_acceptable_outline(outline: Outline | None) -> bool:
    """Outline quality gate: a title and at least one chapter."""
    return outline is not None and bool(outline.title.strip()) and len(outline.chapters) >= 1


def check_script(script: str) -> QualityReport:
    """Assess a generated script.

    Too-short scripts and scripts with placeholder text fail.
    """
    report = QualityReport()
    stripped = script.strip()

    if len(stripped) < MIN_SCRIPT_LENGTH:
        report.issues.append("Script is too short")
        report.score -= 40
    elif len(stripped) > MAX_SCRIPT_LENGTH:
        report.recommendations.append("Script is very long")
        report.score -= 10

    if has_placeholder_text(stripped):
        report.issues.append("Script contains placeholder text")
        report.score -= 40

    return report


def is_acceptable_script(script: str) -> bool:
    """Script quality gate: long enough and free of placeholders."""
    return not check_script(script).issues


def assess_content(
    title: str, script: str, image_count: int, narrated_segments: int
) -> QualityReport:
    """Score a finished set of assets before rendering.

    Args:
        title: Video title
        script: Full script
        image_count: Images generated
        narrated_segments: Segments with synthesized audio

    Returns:
        QualityReport (informational, never blocks a run)
    """
    report = check_script(script)

    if len(title) < MIN_TITLE_LENGTH:
        report.issues.append("Title is too short")
        report.score -= 10
    elif len(title) > MAX_TITLE_LENGTH:
        report.issues.append("Title is too long")
        report.score -= 5

    if image_count == 0:
        report.issues.append("No images generated")
        report.score -= 30
    elif image_count < 3:
        report.issues.append("Very few images generated")
        report.score -= 10

    if narrated_segments == 0:
        report.issues.append("No narration generated")
        report.score -= 30

    if not report.passed:
        report.recommendations.append("Consider regenerating the video with different settings")
    if image_count < 5:
        report.recommendations.append("Increase image count for more visual variety")

    report.score = max(0, report.score)
    return report


__all__ = [
    "QualityReport",
    "ValidationResult",
    "assess_content",
    "check_script",
    "ensure_valid_template",
    "has_placeholder_text",
    "is_acceptable_outline",
    "is_acceptable_script",
    "validate_template",
]
