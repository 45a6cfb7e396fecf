"""Unit tests for response normalization."""

from polytrans.models import TaskKind, TranslationResult, WordEntry
from polytrans.normalizer import normalize, normalize_translation, parse_structured, strip_code_fence


class TestStripCodeFence:
    """Markdown fence removal."""

    def test_json_fence(self):
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence_is_trimmed(self):
        assert strip_code_fence('  {"a": 1}\n') == '{"a": 1}'


class TestParseStructured:
    """JSON object recovery from loose model output."""

    def test_plain_object(self):
        assert parse_structured('{"translation": "hola"}') == {"translation": "hola"}

    def test_object_inside_prose(self):
        payload = 'Sure! Here is the result: {"words": []} Hope this helps.'
        assert parse_structured(payload) == {"words": []}

    def test_array_is_not_an_object(self):
        assert parse_structured("[1, 2, 3]") is None

    def test_garbage(self):
        assert parse_structured("not json at all") is None

    def test_empty(self):
        assert parse_structured("") is None


class TestNormalize:
    """normalize() never raises and degrades to the most literal result."""

    def test_fenced_translation(self):
        result = normalize('```json\n{"translation":"hola"}\n```', TaskKind.TRANSLATE)
        assert result.translation == "hola"

    def test_unparsable_translation_is_kept_as_text(self):
        result = normalize("  Hola mundo  ", TaskKind.TRANSLATE)
        assert result == TranslationResult(translation="Hola mundo")

    def test_unparsable_analysis_is_empty(self):
        result = normalize("I cannot help with that.", TaskKind.ANALYZE)
        assert result.is_empty()

    def test_vocabulary_analysis(self):
        payload = '{"words": [{"original": "猫", "translated": "cat", "meaning": "animal"}]}'
        result = normalize(payload)
        assert result.translation == ""
        assert result.words == [WordEntry(original="猫", translated="cat", meaning="animal")]
        assert result.grammar is None
        assert result.nuance is None

    def test_grammar_analysis(self):
        payload = """```json
{
  "detailedExplanation": {
    "structure": "[Subject] + [Verb]",
    "key_points": [{"point": "topic marker", "segment": "は", "explanation": "marks the topic"}],
    "politeness_level": "polite"
  }
}
```"""
        result = normalize(payload)
        assert result.grammar.structure == "[Subject] + [Verb]"
        assert result.grammar.key_points[0].segment == "は"
        assert result.grammar.politeness_level == "polite"

    def test_wrongly_shaped_fields_are_dropped(self):
        result = normalize('{"words": "none", "nuanceExplanation": 42, "translation": ["x"]}')
        assert result.words is None
        assert result.nuance is None
        assert result.translation == ""

    def test_round_trip(self):
        original = normalize(
            '{"translation": "hola", "nuanceExplanation": {"tone": "warm", '
            '"better_choices": [{"phrase": "buenas", "reason": "casual"}]}}'
        )
        assert TranslationResult.from_dict(original.to_dict()) == original


class TestNormalizeTranslation:
    """Plain translation text extraction."""

    def test_plain_text(self):
        assert normalize_translation("\nBonjour\n") == "Bonjour"

    def test_json_wrapped_translation(self):
        assert normalize_translation('{"translation": " Bonjour "}') == "Bonjour"

    def test_braces_without_translation_field(self):
        text = 'Use {name} as a placeholder'
        assert normalize_translation(text) == text
