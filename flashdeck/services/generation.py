"""
Generation pipeline: prompt, model call, normalization and the bounded
expert-level regeneration.

A single call makes at most two model requests, sequentially:

    run once -> check policy -> (expert flashcards only) run once more

The second run reuses the same normalize/parse/validate path. Its result
replaces the first whenever it is structurally valid, and is not checked
against the policy again. Any failure of the second run falls back to the
first result, so the caller never loses items it already had.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Callable, List, Optional

import structlog

from flashdeck.errors import ErrorKind, GenerationError, NoValidItems
from flashdeck.models import GenerationRequest, OutputKind
from flashdeck.services import normalizer
from flashdeck.services.llm import ModelConfig
from flashdeck.services.monitoring import AI_GENERATION_REQUESTS, REGENERATION_ATTEMPTS
from flashdeck.services.policy import meets_policy, policy_applies
from flashdeck.services.prompts import amend_for_regeneration, build_prompt, strip_script_tags

logger = structlog.get_logger()

NOTES_LIMIT = 20_000

Completion = Callable[..., str]

_NOTES_FENCE_RE = re.compile(r"^```[A-Za-z0-9_+-]*[ \t]*\r?\n(?P<body>.*?)\r?\n?```\s*$", re.S)


@dataclass(frozen=True)
class GenerationOutcome:
    items: Optional[List[normalizer.Item]] = None
    notes: Optional[str] = None
    error: Optional[ErrorKind] = None
    detail: str = ""
    regenerated: bool = False
    model_calls: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


def clean_notes(raw: str) -> str:
    text = (raw or "").strip()
    match = _NOTES_FENCE_RE.match(text)
    if match:
        text = match.group("body")
    return strip_script_tags(text).strip()[:NOTES_LIMIT]


class ContentGenerator:
    """Runs one generation request against a completion function.

    ``complete`` is called as ``complete(prompt, temperature=...)`` and must
    return the raw completion text or raise ``ProviderError``.
    """

    def __init__(self, complete: Completion, config: ModelConfig):
        self.complete = complete
        self.config = config

    def _run(self, prompt: str, temperature: float, request: GenerationRequest) -> List[normalizer.Item]:
        raw = self.complete(prompt, temperature=temperature)
        logger.debug("raw_model_output", kind=request.output_kind.value, preview=raw[:500])
        return normalizer.process(raw, request)

    def _run_notes(self, prompt: str, request: GenerationRequest) -> str:
        raw = self.complete(prompt, temperature=self.config.temperature_for(request.difficulty_level))
        notes = clean_notes(raw)
        if not notes:
            raise NoValidItems("Empty notes in AI response")
        return notes

    def generate(self, request: GenerationRequest) -> GenerationOutcome:
        kind = request.output_kind.value
        prompt = build_prompt(request)

        try:
            if request.output_kind == OutputKind.NOTES:
                outcome = GenerationOutcome(notes=self._run_notes(prompt, request), model_calls=1)
            else:
                temperature = self.config.temperature_for(request.difficulty_level)
                outcome = GenerationOutcome(items=self._run(prompt, temperature, request), model_calls=1)
        except GenerationError as e:
            logger.warning("generation_failed", kind=kind, error_kind=e.kind.value, error=str(e))
            AI_GENERATION_REQUESTS.labels(type=kind, status=e.kind.value).inc()
            return GenerationOutcome(error=e.kind, detail=str(e), model_calls=1)

        if outcome.items is not None and policy_applies(request.output_kind, request.difficulty_level):
            if not meets_policy(outcome.items):
                outcome = self._regenerate(prompt, request, outcome)

        AI_GENERATION_REQUESTS.labels(type=kind, status="success").inc()
        logger.info(
            "generation_completed",
            kind=kind,
            level=request.difficulty_level.value,
            language=request.target_language,
            items=len(outcome.items) if outcome.items is not None else None,
            regenerated=outcome.regenerated,
        )
        return outcome

    def _regenerate(
        self, prompt: str, request: GenerationRequest, original: GenerationOutcome
    ) -> GenerationOutcome:
        logger.info("expert_policy_failed", items=len(original.items or []))
        try:
            items = self._run(amend_for_regeneration(prompt), self.config.regeneration_temperature, request)
        except GenerationError as e:
            # Keep the first result; some items beat no items
            logger.warning("regeneration_failed", error=str(e))
            REGENERATION_ATTEMPTS.labels(outcome="fallback").inc()
            return replace(original, model_calls=2)

        REGENERATION_ATTEMPTS.labels(outcome="replaced").inc()
        return GenerationOutcome(items=items, regenerated=True, model_calls=2)
