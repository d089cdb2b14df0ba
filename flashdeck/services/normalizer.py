"""
Normalization of raw model completions into validated, sanitized item sets.

The pipeline is ``normalize -> parse -> validate``:

* ``normalize`` strips a markdown fence, slices the outermost ``[...]`` span and
  applies the ordered lenient repairs in ``REPAIRS``.
* ``parse`` tries strict JSON and falls back to pattern extraction of
  field-like substrings.
* ``validate`` filters well-formed items, sanitizes them and keeps the first N.

Every step is a pure function of its inputs.
"""
from __future__ import annotations

import json
import re
from typing import Any, Callable, List, Optional, Union

import structlog

from flashdeck.errors import MalformedResponse, NoValidItems, NotAnArray
from flashdeck.models import FlashcardItem, GenerationRequest, OutputKind, QuizItem

logger = structlog.get_logger()

TERM_LIMIT = 500
DEFINITION_LIMIT = 2000
QUESTION_LIMIT = 500
OPTION_LIMIT = 500
EXPLANATION_LIMIT = 2000
QUIZ_OPTION_COUNT = 4

Item = Union[FlashcardItem, QuizItem]

_DQ_STRING = r'"(?:[^"\\]|\\.)*"'
_SQ_STRING = r"'(?:[^'\\]|\\.)*'"

_FENCE_RE = re.compile(r"```[A-Za-z0-9_+-]*[ \t]*\r?\n?(?P<body>.*?)(?:```|\Z)", re.S)


# -------------------- LENIENT REPAIRS --------------------

def _outside_strings(target: str, replace: Callable[[re.Match], str], skip: str = _DQ_STRING):
    """Build a substitution that rewrites ``target`` but leaves string literals alone."""
    pattern = re.compile(rf"(?P<skip>{skip})|{target}", re.S)

    def _apply(text: str) -> str:
        def _repl(match: re.Match) -> str:
            if match.group("skip") is not None:
                return match.group("skip")
            return replace(match)

        return pattern.sub(_repl, text)

    return _apply


def _strip_control_chars(text: str) -> str:
    # Tab, LF and CR survive here; _escape_raw_whitespace handles them inside strings
    return re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]", "", text)


_remove_trailing_commas = _outside_strings(
    r",(?P<closer>\s*[}\]])",
    lambda m: m.group("closer"),
)

_quote_bare_keys = _outside_strings(
    r"(?P<lead>[{,]\s*)(?P<key>[A-Za-z_$][\w$]*)(?P<gap>\s*):",
    lambda m: f'{m.group("lead")}"{m.group("key")}"{m.group("gap")}:',
    skip=f"{_DQ_STRING}|{_SQ_STRING}",
)


def _requote_single(match: re.Match) -> str:
    body = match.group("body").replace("\\'", "'")
    body = re.sub(r'(?<!\\)"', r'\\"', body)
    return f'{match.group("lead")}"{body}"'


_convert_single_quotes = _outside_strings(
    r"(?P<lead>[{\[,:]\s*)'(?P<body>(?:[^'\\]|\\.)*)'",
    _requote_single,
)

_RAW_WHITESPACE_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


def _escape_raw_whitespace(text: str) -> str:
    def _repl(match: re.Match) -> str:
        literal = match.group(0)
        for raw, escaped in _RAW_WHITESPACE_ESCAPES.items():
            literal = literal.replace(raw, escaped)
        return literal

    return re.sub(_DQ_STRING, _repl, text, flags=re.S)


# Order matters: each repair assumes the previous ones already ran
REPAIRS = (
    ("strip_control_chars", _strip_control_chars),
    ("remove_trailing_commas", _remove_trailing_commas),
    ("quote_bare_keys", _quote_bare_keys),
    ("convert_single_quotes", _convert_single_quotes),
    ("escape_raw_whitespace", _escape_raw_whitespace),
)


def strip_fences(text: str) -> str:
    text = (text or "").strip()
    if text.startswith("["):
        return text
    match = _FENCE_RE.search(text)
    if match:
        return match.group("body").strip()
    return text


def slice_array(text: str) -> str:
    start = text.find("[")
    end = text.rfind("]")
    if start != -1 and end > start:
        return text[start : end + 1]
    return text


def repair(text: str) -> str:
    for _name, fix in REPAIRS:
        text = fix(text)
    return text


def normalize(raw: str) -> str:
    """Turn a raw completion into candidate JSON text."""
    return repair(slice_array(strip_fences(raw)))


# -------------------- PARSING --------------------

_FLASHCARD_PAIR_RE = re.compile(
    rf'"term"\s*:\s*(?P<term>{_DQ_STRING})\s*,\s*"definition"\s*:\s*(?P<definition>{_DQ_STRING})',
    re.S,
)

_QUIZ_ITEM_RE = re.compile(
    rf'"question"\s*:\s*(?P<question>{_DQ_STRING})\s*,\s*'
    r'"options"\s*:\s*\[(?P<options>[^\]]*)\]\s*,\s*'
    r'"(?:correctAnswer|correctAnswerIndex)"\s*:\s*(?P<answer>\d+)\s*,\s*'
    rf'"explanation"\s*:\s*(?P<explanation>{_DQ_STRING})',
    re.S,
)


def _decode_literal(literal: str) -> str:
    try:
        return json.loads(literal)
    except ValueError:
        return literal[1:-1]


def extract_items(text: str, kind: OutputKind) -> List[dict]:
    """Recover item dicts from field-like substrings, ignoring JSON validity."""
    if kind == OutputKind.QUIZ:
        return [
            {
                "question": _decode_literal(m.group("question")),
                "options": [_decode_literal(o) for o in re.findall(_DQ_STRING, m.group("options"), re.S)],
                "correctAnswer": int(m.group("answer")),
                "explanation": _decode_literal(m.group("explanation")),
            }
            for m in _QUIZ_ITEM_RE.finditer(text)
        ]
    return [
        {
            "term": _decode_literal(m.group("term")),
            "definition": _decode_literal(m.group("definition")),
        }
        for m in _FLASHCARD_PAIR_RE.finditer(text)
    ]


def parse(candidate: str, kind: OutputKind = OutputKind.FLASHCARDS) -> Any:
    try:
        return json.loads(candidate)
    except (ValueError, RecursionError) as exc:
        # Deeply nested output exhausts the decoder; treat it as malformed
        recovered = [item for item in extract_items(candidate, kind) if coerce_item(item, kind)]
        if not recovered:
            raise MalformedResponse(f"Failed to parse AI response as JSON: {exc}") from exc
        logger.warning("structural_fallback_used", kind=kind.value, items=len(recovered))
        return recovered


# -------------------- VALIDATION --------------------

def sanitize_text(value: str, limit: int) -> str:
    return value.strip()[:limit].replace("<", "").replace(">", "")


def _clean(value: Any, limit: int) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return None
    cleaned = sanitize_text(value, limit)
    return cleaned if cleaned.strip() else None


def _clean_field(item: dict, key: str, limit: int) -> Optional[str]:
    return _clean(item.get(key), limit)


def _coerce_flashcard(item: dict) -> Optional[FlashcardItem]:
    term = _clean_field(item, "term", TERM_LIMIT)
    definition = _clean_field(item, "definition", DEFINITION_LIMIT)
    if term is None or definition is None:
        return None
    return FlashcardItem(term=term, definition=definition)


def _coerce_quiz(item: dict) -> Optional[QuizItem]:
    question = _clean_field(item, "question", QUESTION_LIMIT)
    explanation = _clean_field(item, "explanation", EXPLANATION_LIMIT)
    if question is None or explanation is None:
        return None

    options = item.get("options")
    if not isinstance(options, list) or len(options) != QUIZ_OPTION_COUNT:
        return None
    cleaned_options = [_clean(option, OPTION_LIMIT) for option in options]
    if any(o is None for o in cleaned_options):
        return None

    answer = item.get("correctAnswer", item.get("correctAnswerIndex"))
    if isinstance(answer, bool) or not isinstance(answer, int):
        return None
    if not 0 <= answer < QUIZ_OPTION_COUNT:
        return None

    return QuizItem(
        question=question,
        options=cleaned_options,
        correct_answer_index=answer,
        explanation=explanation,
    )


def coerce_item(item: Any, kind: OutputKind) -> Optional[Item]:
    """Return a sanitized item, or None when ``item`` is not well-formed."""
    if not isinstance(item, dict):
        return None
    if kind == OutputKind.QUIZ:
        return _coerce_quiz(item)
    return _coerce_flashcard(item)


def validate(parsed: Any, request: GenerationRequest) -> List[Item]:
    if not isinstance(parsed, list):
        raise NotAnArray("AI response is not an array")

    accepted: List[Item] = []
    for raw_item in parsed:
        item = coerce_item(raw_item, request.output_kind)
        if item is None:
            continue
        accepted.append(item)
        if len(accepted) >= request.item_count:
            break

    if not accepted:
        raise NoValidItems(f"No valid {request.output_kind.value} found in AI response")
    return accepted


def process(raw: str, request: GenerationRequest) -> List[Item]:
    """Full pipeline over one raw completion. Raises a GenerationError subclass."""
    candidate = normalize(raw)
    parsed = parse(candidate, request.output_kind)
    return validate(parsed, request)
