"""
Response normalizer.

Vendors wrap their output in prose, markdown fences or nothing at all. This is
the single boundary where that untrusted text is turned into a TranslationResult
or a plain translation string. Nothing here raises on malformed input: the most
literal usable artifact is returned instead.
"""

import json
import re
from typing import Any, Dict, Optional

import structlog

from .models import TaskKind, TranslationResult

logger = structlog.get_logger(__name__)

_OPENING_FENCE = re.compile(r"^```[ \t]*(?:json)?[ \t]*\r?\n?", re.IGNORECASE)
_CLOSING_FENCE = re.compile(r"\r?\n?```[ \t]*$")


def strip_code_fence(payload: str) -> str:
    """Trim ``payload`` and remove a surrounding markdown code fence, if any."""
    text = payload.strip()
    if not text.startswith("```"):
        return text
    text = _OPENING_FENCE.sub("", text, count=1)
    text = _CLOSING_FENCE.sub("", text, count=1)
    return text.strip()


def _loads_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(text)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


def parse_structured(payload: str) -> Optional[Dict[str, Any]]:
    """
    Extract a JSON object from loosely formatted model output.

    Tries the fence-stripped payload first, then the span between the first
    ``{`` and the last ``}`` of the original text.

    Returns:
        The parsed object, or None when no object could be recovered
    """
    if not payload:
        return None

    parsed = _loads_object(strip_code_fence(payload))
    if parsed is not None:
        return parsed

    start = payload.find("{")
    end = payload.rfind("}")
    if start != -1 and end > start:
        return _loads_object(payload[start:end + 1])
    return None


def normalize_analysis(payload: str) -> TranslationResult:
    """Analysis output; an empty result when nothing parses."""
    parsed = parse_structured(payload or "")
    if parsed is None:
        logger.warning("Unparsable analysis response", length=len(payload or ""))
        return TranslationResult()
    return TranslationResult.from_dict(parsed)


def normalize_translation(payload: str) -> str:
    """
    Translation output as plain text.

    Models in JSON mode sometimes answer ``{"translation": "..."}``; the field
    is unwrapped in that case, otherwise the trimmed payload is used as is.
    """
    text = (payload or "").strip()
    parsed = parse_structured(text) if "{" in text else None
    if parsed is not None and isinstance(parsed.get("translation"), str):
        return parsed["translation"].strip()
    return text


def normalize(payload: str, task: TaskKind = TaskKind.ANALYZE) -> TranslationResult:
    """
    Normalize a raw vendor payload into a TranslationResult.

    Args:
        payload: Raw text returned by the vendor
        task: TRANSLATE keeps unparsable text as the translation,
            ANALYZE degrades to an empty result

    Returns:
        TranslationResult, never raises
    """
    if task is TaskKind.TRANSLATE:
        parsed = parse_structured(payload or "")
        if parsed is not None and isinstance(parsed.get("translation"), str):
            return TranslationResult.from_dict(parsed)
        return TranslationResult(translation=(payload or "").strip())
    return normalize_analysis(payload)
