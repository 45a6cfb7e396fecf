"""
Language identifier to display label table used when building prompts.
"""

from typing import Dict

AUTO_EXPLANATION_LANGUAGE = "auto"

LANGUAGE_LABELS: Dict[str, str] = {
    "japanese": "Japanese",
    "english": "English",
    "russian": "Russian",
    "chinese": "Chinese",
    "korean": "Korean",
    "spanish": "Spanish",
}


def format_language_label(language: str) -> str:
    """Return the display label, or the raw identifier when it is unknown."""
    return LANGUAGE_LABELS.get(language, language)


def resolve_explanation_language(explanation_language: str, target_language: str) -> str:
    """``auto`` explains in the target language."""
    if not explanation_language or explanation_language == AUTO_EXPLANATION_LANGUAGE:
        return target_language
    return explanation_language
