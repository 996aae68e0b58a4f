import re
from typing import Optional
from pydantic import BaseModel, ConfigDict

from github_trends.domain.models import NO_DESCRIPTION

# Applied in order. Links go first, so an image with alt text keeps "!alt";
# only images with empty alt text are removed outright.
_MARKUP_PATTERNS = (
    (re.compile(r"<[^>]*>"), " "),
    (re.compile(r"#+ "), ""),
    (re.compile(r"\*\*"), ""),
    (re.compile(r"\*"), ""),
    (re.compile(r"`"), ""),
    (re.compile(r"\[([^\]]+)\]\([^)]+\)"), r"\1"),
    (re.compile(r"!\[([^\]]*)\]\([^)]+\)"), ""),
)
_WHITESPACE = re.compile(r"\s+")
_SENTENCE_END = re.compile(r"[.!?]+")
_ARTIFACTS = ("==", "---")


class SummaryConfig(BaseModel):
    """Tunable thresholds for README summary extraction."""
    model_config = ConfigDict(frozen=True)

    min_sentence_length: int = 20
    max_summary_length: int = 200
    min_summary_length: int = 30


DEFAULT_CONFIG = SummaryConfig()


def strip_markup(text: str) -> str:
    """Removes HTML and markdown markup and collapses whitespace into single spaces."""
    for pattern, replacement in _MARKUP_PATTERNS:
        text = pattern.sub(replacement, text)
    return _WHITESPACE.sub(" ", text).strip()


def extract_summary(
    readme_text: Optional[str],
    fallback_description: Optional[str],
    config: SummaryConfig = DEFAULT_CONFIG,
) -> str:
    """
    Builds a short teaser from the opening sentences of a README.

    Args:
        readme_text (Optional[str]): Decoded README contents, or None if unavailable.
        fallback_description (Optional[str]): Platform description used when the README yields too little.
        config (SummaryConfig): Length thresholds.

    Returns:
        str: A plain-text summary; at most one sentence past ``max_summary_length``.
    """
    if not readme_text or not isinstance(readme_text, str):
        return fallback_description or NO_DESCRIPTION

    summary = ""
    for sentence in _SENTENCE_END.split(strip_markup(readme_text)):
        sentence = sentence.strip()
        if len(sentence) <= config.min_sentence_length:
            continue
        if any(artifact in sentence for artifact in _ARTIFACTS):
            continue
        summary += sentence + ". "
        if len(summary) > config.max_summary_length:
            break

    summary = summary.strip()
    if len(summary) < config.min_summary_length and fallback_description:
        return fallback_description

    return summary or fallback_description or NO_DESCRIPTION
