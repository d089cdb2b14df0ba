from __future__ import annotations

import re

from flashdeck.models import DifficultyLevel, GenerationRequest, OutputKind

LANGUAGE_NAMES = {
    "en": "English",
    "fr": "French (Français)",
    "es": "Spanish (Español)",
    "de": "German (Deutsch)",
    "it": "Italian (Italiano)",
    "pt": "Portuguese (Português)",
    "ru": "Russian (Русский)",
    "ja": "Japanese (日本語)",
    "ko": "Korean (한국어)",
    "zh": "Chinese (中文)",
    "ar": "Arabic (العربية)",
    "hi": "Hindi (हिन्दी)",
}

LEVEL_INSTRUCTIONS = {
    DifficultyLevel.BEGINNER: (
        "Use simple, clear language with basic concepts. Focus on fundamental terms, basic "
        "definitions, and easy-to-understand explanations. Avoid jargon and complex terminology."
    ),
    DifficultyLevel.INTERMEDIATE: (
        "Use moderate complexity with detailed explanations. Include important concepts, standard "
        "terminology, and more comprehensive definitions. Assume some background knowledge."
    ),
    DifficultyLevel.ADVANCED: (
        "Use sophisticated concepts with in-depth explanations. Include complex terminology, detailed "
        "technical concepts, and comprehensive analysis. Assume solid background knowledge."
    ),
    DifficultyLevel.EXPERT: (
        "Use extremely technical and specialized terminology. Cover graduate-level or professional-level "
        "concepts, advanced theories, complex methodologies, and highly specialized jargon. Assume deep "
        "expertise and years of experience in the field."
    ),
}

LEVEL_EMPHASIS = {
    DifficultyLevel.BEGINNER: "Focus on basic vocabulary and simple concepts. Use everyday language. Avoid technical terms.",
    DifficultyLevel.INTERMEDIATE: "Include standard concepts and some technical terminology. Provide moderate detail.",
    DifficultyLevel.ADVANCED: (
        "Use sophisticated vocabulary and complex concepts. Include technical details and assume good "
        "background knowledge."
    ),
    DifficultyLevel.EXPERT: (
        "CRITICAL: Generate ONLY expert-level content. Use highly specialized terminology, advanced "
        "concepts, professional jargon, and technical language that only experts would understand."
    ),
}

EXPERT_REQUIREMENTS = """
EXPERT LEVEL REQUIREMENTS (MANDATORY):
- Use ONLY highly technical and specialized terminology
- Include advanced theories, methodologies, and cutting-edge concepts
- Assume extensive professional experience and graduate-level education
- Use professional jargon and field-specific terminology
- Include complex processes, advanced calculations, or specialized procedures
- NO basic explanations or simple concepts
- Every definition must be detailed (well over 150 characters)

==> FORBIDDEN: Simple definitions, basic concepts, introductory explanations
==> NO "introduction to..." or beginner-friendly content
"""

REGENERATION_AMENDMENT = """

CRITICAL: Previous attempt generated content that was NOT expert level.
Every term and definition MUST be at PhD/professional level with highly specialized terminology.
Content must be EXTREMELY technical, using professional jargon, complex methodologies, and advanced theories.
DO NOT simplify anything - this is for experts with extensive education in the field."""

OUTPUT_FORMATS = {
    OutputKind.FLASHCARDS: (
        'Respond ONLY with a valid JSON array in this format: [{"term": "string", "definition": "string"}, ...]. '
        "Each 'term' is a concise word or question; each 'definition' is a more detailed explanation or answer. "
        "Do not include any other text, explanations, or markdown fences."
    ),
    OutputKind.QUIZ: (
        "Respond ONLY with a valid JSON array in this format: "
        '[{"question": "string", "options": ["A", "B", "C", "D"], "correctAnswer": 0, "explanation": "string"}, ...]. '
        "Every question has exactly 4 options and correctAnswer is the 0-based index of the right option. "
        "Do not include any other text, explanations, or markdown fences."
    ),
    OutputKind.NOTES: (
        "Respond with well-structured study notes in Markdown: headings, short paragraphs and bullet "
        "lists covering the key concepts. Do not wrap the notes in a code fence."
    ),
}

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.I)


def strip_script_tags(text: str) -> str:
    return _SCRIPT_RE.sub("", text)


def _task_line(request: GenerationRequest, language: str) -> str:
    if request.output_kind == OutputKind.QUIZ:
        return f"Generate exactly {request.item_count} multiple-choice quiz questions in {language}"
    if request.output_kind == OutputKind.NOTES:
        return f"Write comprehensive study notes in {language}"
    return f"Generate exactly {request.item_count} flashcards in {language}"


def build_prompt(request: GenerationRequest) -> str:
    level = request.difficulty_level
    language = LANGUAGE_NAMES.get(request.target_language, "English")
    content = strip_script_tags(request.content)

    parts = [
        f"You are an expert educator creating study material for {level.value.upper()} level learners. "
        f"{_task_line(request, language)} about: {content}",
        "",
        f"DIFFICULTY LEVEL: {level.value.upper()}",
        f"LEVEL REQUIREMENTS: {LEVEL_INSTRUCTIONS[level]}",
        "",
        LEVEL_EMPHASIS[level],
    ]
    if level == DifficultyLevel.EXPERT:
        parts.append(EXPERT_REQUIREMENTS)
    parts.extend([
        "",
        f"IMPORTANT: All content must be written in {language} only and must match the "
        f"{level.value} difficulty level precisely. Keep it educational and appropriate.",
        "",
        OUTPUT_FORMATS[request.output_kind],
    ])
    return "\n".join(parts)


def amend_for_regeneration(prompt: str) -> str:
    return prompt + REGENERATION_AMENDMENT
