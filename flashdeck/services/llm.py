from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Dict, Optional

import structlog
from openai import OpenAI, OpenAIError

from flashdeck.config import settings
from flashdeck.errors import ProviderError
from flashdeck.models import DifficultyLevel

logger = structlog.get_logger()


@dataclass(frozen=True)
class ModelConfig:
    """Which model to call and how; passed into the generation pipeline."""

    model: str = "gpt-4o-mini"
    temperatures: Dict[DifficultyLevel, float] = field(
        default_factory=lambda: {
            DifficultyLevel.BEGINNER: 0.7,
            DifficultyLevel.INTERMEDIATE: 0.7,
            DifficultyLevel.ADVANCED: 0.7,
            DifficultyLevel.EXPERT: 0.2,
        }
    )
    regeneration_temperature: float = 0.1
    max_tokens: int = 2048
    timeout: float = 30.0

    def temperature_for(self, level: DifficultyLevel) -> float:
        return self.temperatures.get(level, 0.7)

    @classmethod
    def from_settings(cls) -> "ModelConfig":
        return cls(
            model=settings.OPENAI_MODEL,
            max_tokens=settings.LLM_MAX_TOKENS,
            timeout=settings.LLM_TIMEOUT_SECONDS,
        )


_MOCK_FLASHCARDS = json.dumps([
    {"term": "Latency", "definition": "The delay between a request being issued and the first byte of the response."},
    {"term": "Throughput", "definition": "The amount of work a system completes per unit of time."},
    {"term": "Idempotency", "definition": "The property of an operation that has the same effect when applied repeatedly."},
    {"term": "Cache hit", "definition": "A lookup that is served from the cache without reaching the backing store."},
    {"term": "Backpressure", "definition": "Flow control where a slow consumer signals producers to reduce their rate."},
])

_MOCK_QUIZ = json.dumps([
    {
        "question": "Which layer handles routing on the Internet?",
        "options": ["Physical", "Data Link", "Network", "Transport"],
        "correctAnswer": 2,
        "explanation": "IP routing occurs at Layer 3, the network layer.",
    }
])

_MOCK_NOTES = "# Study notes\n\n- This is a MOCK set of notes.\n- Set MOCK_MODE=0 to call the model."


class LLMClient:
    """Thin wrapper over the OpenAI chat completions API."""

    def __init__(self, config: ModelConfig, api_key: Optional[str] = None, mock: bool = False):
        self.config = config
        self.api_key = api_key
        self.mock = mock
        self._client: Optional[OpenAI] = None

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not self.api_key:
                raise ProviderError("OPENAI_API_KEY not set")
            self._client = OpenAI(api_key=self.api_key)
        # Per-request timeout so no outbound call can hang the request
        return self._client.with_options(timeout=self.config.timeout)

    def _mock_complete(self, prompt: str) -> str:
        if '"correctAnswer"' in prompt:
            return _MOCK_QUIZ
        if '"term"' in prompt:
            return _MOCK_FLASHCARDS
        return _MOCK_NOTES

    def complete(self, prompt: str, *, temperature: float) -> str:
        if self.mock:
            return self._mock_complete(prompt)

        client = self._get_client()
        try:
            rsp = client.chat.completions.create(
                model=self.config.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                max_tokens=self.config.max_tokens,
            )
        except OpenAIError as e:
            logger.error("llm_request_failed", model=self.config.model, error=str(e))
            raise ProviderError(f"AI service error: {e}") from e

        content = rsp.choices[0].message.content if rsp.choices else None
        if not content or not content.strip():
            raise ProviderError("No response from AI service")
        return content.strip()


def get_llm_client() -> LLMClient:
    return LLMClient(
        ModelConfig.from_settings(),
        api_key=settings.OPENAI_API_KEY,
        mock=settings.MOCK_MODE,
    )
