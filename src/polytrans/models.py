"""
Request and result types shared by providers, the normalizer and the router.

Results are plain dataclasses. ``TranslationResult.from_dict`` is the only place
that looks at vendor-supplied structure, so every field is read defensively.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .languages import AUTO_EXPLANATION_LANGUAGE


class TaskKind(Enum):
    """What the caller wants done with the text."""
    TRANSLATE = "translate"
    ANALYZE = "analyze"


class AnalysisKind(Enum):
    """Analysis subtype for ``TaskKind.ANALYZE`` requests."""
    VOCABULARY = "vocabulary"
    GRAMMAR = "grammar"
    NUANCE = "nuance"


@dataclass(frozen=True)
class TranslationRequest:
    """A single translate or analyze request. Immutable once issued."""
    text: str
    source_language: str
    target_language: str
    task: TaskKind = TaskKind.TRANSLATE
    analysis: Optional[AnalysisKind] = None
    explanation_language: str = AUTO_EXPLANATION_LANGUAGE

    def __post_init__(self):
        if not self.text or not self.text.strip():
            raise ValueError("Source text must not be empty")
        if self.task is TaskKind.ANALYZE and self.analysis is None:
            raise ValueError("Analyze requests need an analysis kind")


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float, bool)):
        return str(value)
    return None


def _as_list(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


@dataclass
class WordEntry:
    original: str
    translated: str
    meaning: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"original": self.original, "translated": self.translated}
        if self.meaning is not None:
            data["meaning"] = self.meaning
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WordEntry":
        return cls(
            original=_as_str(data.get("original")) or "",
            translated=_as_str(data.get("translated")) or "",
            meaning=_as_str(data.get("meaning")),
        )


@dataclass
class GrammarPoint:
    point: str
    explanation: str
    segment: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"point": self.point, "explanation": self.explanation}
        if self.segment is not None:
            data["segment"] = self.segment
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GrammarPoint":
        return cls(
            point=_as_str(data.get("point")) or "",
            explanation=_as_str(data.get("explanation")) or "",
            segment=_as_str(data.get("segment")),
        )


@dataclass
class GrammarExplanation:
    """Sentence structure breakdown, key grammar points and politeness register."""
    structure: Optional[str] = None
    key_points: List[GrammarPoint] = field(default_factory=list)
    politeness_level: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"key_points": [p.to_dict() for p in self.key_points]}
        if self.structure is not None:
            data["structure"] = self.structure
        if self.politeness_level is not None:
            data["politeness_level"] = self.politeness_level
        return data

    @classmethod
    def from_value(cls, value: Any) -> Optional["GrammarExplanation"]:
        # Older prompts produced a free-text explanation
        if isinstance(value, str):
            return cls(structure=value) if value.strip() else None
        if not isinstance(value, dict):
            return None
        return cls(
            structure=_as_str(value.get("structure")),
            key_points=[GrammarPoint.from_dict(p) for p in _as_list(value.get("key_points"))],
            politeness_level=_as_str(value.get("politeness_level")),
        )


@dataclass
class NuanceChoice:
    phrase: str
    reason: str
    original_segment: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"phrase": self.phrase, "reason": self.reason}
        if self.original_segment is not None:
            data["original_segment"] = self.original_segment
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NuanceChoice":
        return cls(
            phrase=_as_str(data.get("phrase")) or "",
            reason=_as_str(data.get("reason")) or "",
            original_segment=_as_str(data.get("original_segment")),
        )


@dataclass
class NuanceExplanation:
    """Tone, cultural context and suggested alternative phrasings."""
    tone: Optional[str] = None
    cultural_context: Optional[str] = None
    better_choices: List[NuanceChoice] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"better_choices": [c.to_dict() for c in self.better_choices]}
        if self.tone is not None:
            data["tone"] = self.tone
        if self.cultural_context is not None:
            data["cultural_context"] = self.cultural_context
        return data

    @classmethod
    def from_value(cls, value: Any) -> Optional["NuanceExplanation"]:
        if isinstance(value, str):
            return cls(tone=value) if value.strip() else None
        if not isinstance(value, dict):
            return None
        return cls(
            tone=_as_str(value.get("tone")),
            cultural_context=_as_str(value.get("cultural_context")),
            better_choices=[NuanceChoice.from_dict(c) for c in _as_list(value.get("better_choices"))],
        )


@dataclass
class TranslationResult:
    """
    Generic result of a translate or analyze call.

    Partial population is expected: a translate call fills ``translation``, a
    vocabulary analysis fills only ``words``, and so on.
    """
    translation: str = ""
    words: Optional[List[WordEntry]] = None
    grammar: Optional[GrammarExplanation] = None
    nuance: Optional[NuanceExplanation] = None

    def is_empty(self) -> bool:
        return not self.translation and self.words is None and self.grammar is None and self.nuance is None

    def merge(self, other: "TranslationResult") -> "TranslationResult":
        """
        Layer ``other`` on top of this result.

        Args:
            other: Result whose populated fields take precedence

        Returns:
            A new TranslationResult
        """
        return TranslationResult(
            translation=other.translation or self.translation,
            words=other.words if other.words is not None else self.words,
            grammar=other.grammar if other.grammar is not None else self.grammar,
            nuance=other.nuance if other.nuance is not None else self.nuance,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize using the wire keys the prompts ask vendors to produce."""
        data: Dict[str, Any] = {}
        if self.translation:
            data["translation"] = self.translation
        if self.words is not None:
            data["words"] = [w.to_dict() for w in self.words]
        if self.grammar is not None:
            data["detailedExplanation"] = self.grammar.to_dict()
        if self.nuance is not None:
            data["nuanceExplanation"] = self.nuance.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TranslationResult":
        """
        Build a result from an untrusted mapping.

        Unknown keys are ignored and wrongly shaped values become absent fields.
        """
        if not isinstance(data, dict):
            return cls()

        words = None
        if isinstance(data.get("words"), list):
            words = [WordEntry.from_dict(w) for w in _as_list(data["words"])]

        return cls(
            translation=_as_str(data.get("translation")) or "",
            words=words,
            grammar=GrammarExplanation.from_value(data.get("detailedExplanation")),
            nuance=NuanceExplanation.from_value(data.get("nuanceExplanation")),
        )
