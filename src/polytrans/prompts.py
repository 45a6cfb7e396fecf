"""
Prompt construction shared by all providers.

Several vendors have no strict schema enforcement, so analysis prompts embed
the expected JSON shape textually and ask for JSON only.
"""

from typing import Dict

from .languages import format_language_label
from .models import AnalysisKind

ANALYSIS_SCHEMAS: Dict[AnalysisKind, str] = {
    AnalysisKind.VOCABULARY: """{
  "words": [
    {
      "original": "word or idiom as it appears in the source text",
      "translated": "its translation",
      "meaning": "brief meaning or usage note"
    }
  ]
}""",
    AnalysisKind.GRAMMAR: """{
  "detailedExplanation": {
    "structure": "diagram of the sentence structure, e.g. [Subject] + [Object] + [Verb]",
    "key_points": [
      {
        "point": "name of the grammar point",
        "segment": "exact quote of the source segment it applies to",
        "explanation": "how the grammar works here"
      }
    ],
    "politeness_level": "register of the source text, e.g. casual, polite, honorific"
  }
}""",
    AnalysisKind.NUANCE: """{
  "nuanceExplanation": {
    "tone": "tone and emotion of the source text",
    "cultural_context": "cultural or situational background a reader should know",
    "better_choices": [
      {
        "phrase": "alternative phrasing in the target language",
        "original_segment": "segment of the translation it would replace",
        "reason": "why it conveys the nuance better"
      }
    ]
  }
}""",
}

_ANALYSIS_FOCUS: Dict[AnalysisKind, str] = {
    AnalysisKind.VOCABULARY: "Extract the important words and idioms of the source text.",
    AnalysisKind.GRAMMAR: "Explain the grammar and sentence structure of the source text.",
    AnalysisKind.NUANCE: "Explain the nuance, tone and connotations the translation has to carry.",
}


def build_translation_prompt(source_language: str, target_language: str) -> str:
    """System prompt for a plain translation."""
    from_label = format_language_label(source_language)
    to_label = format_language_label(target_language)
    return (
        f"You are a professional translator. Translate the following text from "
        f"{from_label} to {to_label}. Return only the translated text, "
        f"with no commentary, notes, quotation marks or explanations."
    )


def build_analysis_prompt(
    analysis_kind: AnalysisKind,
    source_language: str,
    target_language: str,
    explanation_language: str,
) -> str:
    """
    System prompt for a vocabulary, grammar or nuance analysis.

    Args:
        analysis_kind: Which analysis to request
        source_language: Language identifier of the source text
        target_language: Language identifier of the translation
        explanation_language: Language the explanations are written in

    Returns:
        Prompt text including the JSON schema the vendor must follow
    """
    from_label = format_language_label(source_language)
    to_label = format_language_label(target_language)
    explain_label = format_language_label(explanation_language)
    return (
        f"You are a professional translator and language teacher. The user gives you "
        f"a text in {from_label} and its translation into {to_label}. "
        f"{_ANALYSIS_FOCUS[analysis_kind]} Write all explanations in {explain_label}. "
        f"Do not add commentary outside the JSON. "
        f"Return only valid JSON with the following structure:\n"
        f"{ANALYSIS_SCHEMAS[analysis_kind]}"
    )


def build_analysis_input(source_text: str, translated_text: str) -> str:
    """User message carrying both texts for an analysis call."""
    return f"Source text:\n{source_text}\n\nTranslation:\n{translated_text}"
