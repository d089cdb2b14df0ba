"""
Heuristic difficulty check for expert-level flashcards
"""
from __future__ import annotations

from typing import Iterable

from flashdeck.models import DifficultyLevel, FlashcardItem, OutputKind

EXPERT_KEYWORDS = (
    "advanced", "sophisticated", "complex", "specialized", "technical", "methodology",
    "parameter", "protocol", "algorithm", "optimization", "coefficient", "analysis",
    "synthesis", "implementation", "configuration", "calibration", "specification",
    "framework", "architecture", "paradigm", "mechanism", "phenomenon", "theoretical",
    "quantum", "differential", "molecular", "computational", "neural", "cryptographic",
    "stochastic", "multivariate", "probabilistic", "algorithmic", "thermodynamic",
)

BANNED_SIMPLE_TERMS = (
    "basic", "simple", "easy", "introduction to", "beginner", "fundamental",
    "overview", "elementary", "starting", "first step", "learn about",
)

MIN_EXPERT_KEYWORDS = 2
MIN_DEFINITION_CHARS = 150


def policy_applies(kind: OutputKind, level: DifficultyLevel) -> bool:
    return kind == OutputKind.FLASHCARDS and level == DifficultyLevel.EXPERT


def is_expert_item(card: FlashcardItem) -> bool:
    combined = f"{card.term} {card.definition}".lower()
    if any(term in combined for term in BANNED_SIMPLE_TERMS):
        return False
    hits = sum(1 for keyword in EXPERT_KEYWORDS if keyword in combined)
    return hits >= MIN_EXPERT_KEYWORDS and len(card.definition) > MIN_DEFINITION_CHARS


def meets_policy(items: Iterable[FlashcardItem]) -> bool:
    """True when every card reads as expert-level."""
    return all(is_expert_item(card) for card in items)
