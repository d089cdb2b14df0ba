"""
Unit tests for the response normalizer
"""
import json

import pytest

from flashdeck.errors import MalformedResponse, NoValidItems, NotAnArray
from flashdeck.models import FlashcardItem, GenerationRequest, OutputKind
from flashdeck.services.normalizer import (
    REPAIRS, normalize, parse, process, strip_fences, validate,
)


def _request(count=10, kind=OutputKind.FLASHCARDS):
    return GenerationRequest(
        content="Cell biology",
        target_language="en",
        item_count=count,
        output_kind=kind,
    )


CARDS = [
    {"term": "Mitochondria", "definition": "Organelles that produce ATP, the cell's energy: currency."},
    {"term": "Ribosome", "definition": "Site of protein synthesis, reading mRNA, building chains."},
    {"term": "Nucleus", "definition": "Holds the genome; uses {braces} and [brackets] in text."},
]


class TestNormalize:
    def test_valid_array_passes_through(self):
        """Valid JSON is untouched, including commas and colons inside strings"""
        raw = json.dumps(CARDS)
        assert json.loads(normalize(raw)) == CARDS

    def test_fenced_block_matches_unfenced(self):
        """Fence stripping does not change the content"""
        raw = json.dumps(CARDS)
        fenced = f"```json\n{raw}\n```"
        assert process(fenced, _request()) == process(raw, _request())

    def test_fence_without_language_tag(self):
        """A plain fence is stripped too"""
        assert strip_fences('```\n[{"term": "A"}]\n```') == '[{"term": "A"}]'

    def test_prose_around_array_is_sliced_off(self):
        """Leading and trailing prose is discarded"""
        raw = "Here you go:\n[{\"term\":\"X\",\"definition\":\"Y\"}]\nHope this helps!"
        items = process(raw, _request())
        assert items == [FlashcardItem(term="X", definition="Y")]

    def test_trailing_comma_removed(self):
        """Trailing commas before closers are removed"""
        items = process('[{"term": "A", "definition": "B"},]', _request())
        assert items == [FlashcardItem(term="A", definition="B")]

    def test_single_quotes_converted(self):
        """Single-quoted keys and values become double-quoted"""
        items = process("[{'term': 'A', 'definition': 'B'}]", _request())
        assert items == [FlashcardItem(term="A", definition="B")]

    def test_single_quoted_value_with_double_quote(self):
        """Embedded double quotes are escaped when requoting"""
        items = process("[{'term': 'Say \"hi\"', 'definition': 'Greeting'}]", _request())
        assert items[0].term == 'Say "hi"'

    def test_bare_keys_quoted(self):
        """Unquoted object keys are quoted"""
        items = process('[{term: "A", definition: "B"}]', _request())
        assert items == [FlashcardItem(term="A", definition="B")]

    def test_raw_newlines_inside_strings_escaped(self):
        """Raw line breaks inside string values survive as real newlines"""
        raw = '[\n  {"term": "A", "definition": "line one\nline two\tend"}\n]'
        items = process(raw, _request())
        assert items[0].definition == "line one\nline two\tend"

    def test_control_characters_stripped(self):
        """C0 and C1 control characters are removed"""
        raw = '[{"term": "A\x07\x00", "definition": "B\x85"}]'
        items = process(raw, _request())
        assert items == [FlashcardItem(term="A", definition="B")]

    def test_repair_order_is_fixed(self):
        """The repair sequence runs in a fixed, documented order"""
        assert [name for name, _ in REPAIRS] == [
            "strip_control_chars",
            "remove_trailing_commas",
            "quote_bare_keys",
            "convert_single_quotes",
            "escape_raw_whitespace",
        ]


class TestParse:
    def test_deeply_nested_output_is_malformed(self):
        """Nesting too deep for the decoder is reported as malformed"""
        nested = "[" * 100000 + "]" * 100000
        with pytest.raises(MalformedResponse):
            parse(nested, OutputKind.FLASHCARDS)
        with pytest.raises(MalformedResponse):
            process(nested, _request())

    def test_structural_fallback_recovers_pairs(self):
        """Term/definition pairs are recovered when JSON is broken"""
        broken = '[{"term": "A", "definition": "B"} {"term": "C", "definition": "D \\"quoted\\""}]'
        parsed = parse(normalize(broken), OutputKind.FLASHCARDS)
        assert parsed == [
            {"term": "A", "definition": "B"},
            {"term": "C", "definition": 'D "quoted"'},
        ]

    def test_quiz_fallback_recovers_questions(self):
        """Quiz groups are recovered when JSON is broken"""
        broken = (
            '[{"question": "2+2?", "options": ["1", "2", "3", "4"], "correctAnswer": 3, '
            '"explanation": "Arithmetic."} {"question": "broken"}]'
        )
        parsed = parse(normalize(broken), OutputKind.QUIZ)
        assert parsed == [{
            "question": "2+2?",
            "options": ["1", "2", "3", "4"],
            "correctAnswer": 3,
            "explanation": "Arithmetic.",
        }]

    def test_no_structure_is_malformed(self):
        """Plain prose with nothing recognizable fails as malformed"""
        with pytest.raises(MalformedResponse):
            process("I'm sorry, I can't help with that.", _request())

    def test_fallback_with_only_empty_pairs_is_malformed(self):
        """Fallback matches that are all blank do not count"""
        with pytest.raises(MalformedResponse):
            parse('[{"term": "", "definition": " "} oops', OutputKind.FLASHCARDS)


class TestValidate:
    def test_object_is_not_an_array(self):
        """A top-level object is rejected"""
        with pytest.raises(NotAnArray):
            process('{"term": "A", "definition": "B"}', _request())

    def test_all_items_missing_definition(self):
        """No surviving items is reported as NoValidItems"""
        with pytest.raises(NoValidItems):
            process('[{"term": "A"}, {"term": "B", "definition": "   "}]', _request())

    def test_invalid_items_are_filtered(self):
        """Non-objects and wrongly typed fields are skipped"""
        parsed = ["text", 3, {"term": 1, "definition": "x"}, {"term": "A", "definition": "B"}]
        assert validate(parsed, _request()) == [FlashcardItem(term="A", definition="B")]

    def test_term_hard_truncated(self):
        """Terms are cut to 500 characters without an ellipsis"""
        items = validate([{"term": "a" * 600, "definition": "d" * 2500}], _request())
        assert items[0].term == "a" * 500
        assert items[0].definition == "d" * 2000

    def test_angle_brackets_stripped_after_trim(self):
        """Sanitization trims, truncates, then strips angle brackets"""
        items = validate([{"term": "  <b>Bold</b>  ", "definition": "x < y > z"}], _request())
        assert items[0].term == "bBold/b"
        assert items[0].definition == "x  y  z"

    def test_first_n_items_in_order(self):
        """Item count is an upper bound and order is preserved"""
        cards = [{"term": f"T{i}", "definition": f"D{i}"} for i in range(12)]
        items = process(json.dumps(cards), _request(count=5))
        assert [c.term for c in items] == ["T0", "T1", "T2", "T3", "T4"]

    def test_fewer_items_than_requested(self):
        """Shorter results are returned whole"""
        items = process(json.dumps(CARDS), _request(count=10))
        assert len(items) == len(CARDS)


class TestQuizValidation:
    def _question(self, **overrides):
        question = {
            "question": "Which organelle makes ATP?",
            "options": ["Nucleus", "Mitochondria", "Ribosome", "Golgi"],
            "correctAnswer": 1,
            "explanation": "Mitochondria run oxidative phosphorylation.",
        }
        question.update(overrides)
        return question

    def test_valid_question_kept(self):
        """A well-formed question is accepted and serialized with correctAnswer"""
        items = validate([self._question()], _request(kind=OutputKind.QUIZ))
        dumped = items[0].model_dump(by_alias=True)
        assert dumped["correctAnswer"] == 1
        assert dumped["options"][1] == "Mitochondria"

    @pytest.mark.parametrize("overrides", [
        {"options": ["A", "B", "C"]},
        {"options": ["A", "B", "C", ""]},
        {"correctAnswer": 4},
        {"correctAnswer": -1},
        {"correctAnswer": True},
        {"correctAnswer": "1"},
        {"explanation": ""},
    ])
    def test_invalid_questions_rejected(self, overrides):
        """Questions need 4 options, an index in range and an explanation"""
        with pytest.raises(NoValidItems):
            validate([self._question(**overrides)], _request(kind=OutputKind.QUIZ))

    def test_correct_answer_index_key_accepted(self):
        """The correctAnswerIndex spelling is accepted"""
        question = self._question()
        question["correctAnswerIndex"] = question.pop("correctAnswer")
        items = validate([question], _request(kind=OutputKind.QUIZ))
        assert items[0].correct_answer_index == 1
