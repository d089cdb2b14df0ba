from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


SUPPORTED_LANGUAGES = ("en", "fr", "es", "de", "it", "pt", "ru", "ja", "ko", "zh", "ar", "hi")
DIFFICULTY_LEVELS = ("beginner", "intermediate", "advanced", "expert")

MIN_CONTEXT_CHARS = 3
MAX_CONTEXT_CHARS = 50_000
MIN_ITEM_COUNT = 5
MAX_ITEM_COUNT = 20

# Shown when a field is absent from the request body entirely
MISSING_FIELD_MESSAGES = {
    "context": "Invalid context provided",
    "language": "Invalid language provided",
    "count": "Invalid count. Please choose between 5 and 20 items.",
    "level": "Invalid difficulty level provided",
}


class OutputKind(str, Enum):
    FLASHCARDS = "flashcards"
    NOTES = "notes"
    QUIZ = "quiz"


class DifficultyLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


# ----------------- Request bodies -----------------

class _ContentBody(BaseModel):
    context: str
    language: str
    level: str

    @field_validator("context", mode="before")
    @classmethod
    def _check_context(cls, value):
        if not isinstance(value, str) or not value:
            raise ValueError("Invalid context provided")
        if len(value) > MAX_CONTEXT_CHARS:
            raise ValueError("Context too long. Please limit to 50,000 characters.")
        if len(value.strip()) < MIN_CONTEXT_CHARS:
            raise ValueError("Context too short. Please provide more detailed content.")
        return value

    @field_validator("language", mode="before")
    @classmethod
    def _check_language(cls, value):
        if not isinstance(value, str) or not value:
            raise ValueError("Invalid language provided")
        if value not in SUPPORTED_LANGUAGES:
            raise ValueError("Unsupported language. Please choose from supported languages.")
        return value

    @field_validator("level", mode="before")
    @classmethod
    def _check_level(cls, value):
        if not isinstance(value, str) or not value:
            raise ValueError("Invalid difficulty level provided")
        if value not in DIFFICULTY_LEVELS:
            raise ValueError(
                "Invalid difficulty level. Please choose from: beginner, intermediate, advanced, expert."
            )
        return value


class ItemsRequestBody(_ContentBody):
    """Body of the flashcard and quiz endpoints."""

    count: int

    @field_validator("count", mode="before")
    @classmethod
    def _check_count(cls, value):
        # bool is an int subclass; JSON true must not count as 1
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError("Invalid count. Please choose between 5 and 20 items.")
        if value < MIN_ITEM_COUNT or value > MAX_ITEM_COUNT:
            raise ValueError("Invalid count. Please choose between 5 and 20 items.")
        return value


class NotesRequestBody(_ContentBody):
    """Body of the notes endpoint; item count does not apply."""


class GenerationRequest(BaseModel):
    """A request that already passed boundary validation."""

    content: str
    target_language: str
    item_count: int = Field(default=MAX_ITEM_COUNT, ge=MIN_ITEM_COUNT, le=MAX_ITEM_COUNT)
    difficulty_level: DifficultyLevel = DifficultyLevel.INTERMEDIATE
    output_kind: OutputKind = OutputKind.FLASHCARDS

    @classmethod
    def from_body(cls, body: _ContentBody, output_kind: OutputKind) -> "GenerationRequest":
        return cls(
            content=body.context,
            target_language=body.language,
            item_count=getattr(body, "count", MAX_ITEM_COUNT),
            difficulty_level=DifficultyLevel(body.level),
            output_kind=output_kind,
        )


# ----------------- Generated items -----------------

class FlashcardItem(BaseModel):
    term: str
    definition: str


class QuizItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question: str
    options: List[str]
    correct_answer_index: int = Field(alias="correctAnswer", ge=0, le=3)
    explanation: str


class FlashcardsResponse(BaseModel):
    flashcards: List[FlashcardItem]


class QuizResponse(BaseModel):
    questions: List[QuizItem]


class NotesResponse(BaseModel):
    notes: str


class ErrorResponse(BaseModel):
    error: str
