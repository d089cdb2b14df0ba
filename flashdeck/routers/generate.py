from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
import structlog

from flashdeck.errors import ErrorKind, error_response_for
from flashdeck.middleware.rate_limit import ai_generation_limit
from flashdeck.models import (
    GenerationRequest, ItemsRequestBody, NotesRequestBody, OutputKind,
)
from flashdeck.services.generation import ContentGenerator, GenerationOutcome
from flashdeck.services.llm import get_llm_client
from flashdeck.services.logging import client_address
from flashdeck.services.rate_counter import RateCounter, rate_counter


logger = structlog.get_logger()

router = APIRouter(prefix="/api", tags=["generate"])


def get_generator() -> ContentGenerator:
    client = get_llm_client()
    return ContentGenerator(client.complete, client.config)


def get_rate_counter() -> RateCounter:
    return rate_counter


def error_response(kind: ErrorKind) -> JSONResponse:
    status_code, message = error_response_for(kind)
    return JSONResponse(status_code=status_code, content={"error": message})


def _payload(outcome: GenerationOutcome, kind: OutputKind) -> dict:
    if kind == OutputKind.NOTES:
        return {"notes": outcome.notes}
    items = [item.model_dump(by_alias=True) for item in outcome.items]
    if kind == OutputKind.QUIZ:
        return {"questions": items}
    return {"flashcards": items}


def _generate(
    request: Request,
    generation: GenerationRequest,
    generator: ContentGenerator,
    counter: RateCounter,
):
    client_id = client_address(request)
    if counter.is_limited(client_id):
        logger.warning("generation_quota_exceeded", client_ip=client_id)
        return error_response(ErrorKind.RATE_LIMITED)

    logger.info(
        "generation_requested",
        kind=generation.output_kind.value,
        count=generation.item_count,
        language=generation.target_language,
        level=generation.difficulty_level.value,
        context_chars=len(generation.content),
    )
    outcome = generator.generate(generation)
    if not outcome.ok:
        return error_response(outcome.error)

    counter.increment(client_id)
    return _payload(outcome, generation.output_kind)


@router.post("/generate-flashcards")
@ai_generation_limit()
def generate_flashcards(
    request: Request,
    body: ItemsRequestBody,
    generator: ContentGenerator = Depends(get_generator),
    counter: RateCounter = Depends(get_rate_counter),
):
    return _generate(request, GenerationRequest.from_body(body, OutputKind.FLASHCARDS), generator, counter)


@router.post("/generate-quiz")
@ai_generation_limit()
def generate_quiz(
    request: Request,
    body: ItemsRequestBody,
    generator: ContentGenerator = Depends(get_generator),
    counter: RateCounter = Depends(get_rate_counter),
):
    return _generate(request, GenerationRequest.from_body(body, OutputKind.QUIZ), generator, counter)


@router.post("/generate-notes")
@ai_generation_limit()
def generate_notes(
    request: Request,
    body: NotesRequestBody,
    generator: ContentGenerator = Depends(get_generator),
    counter: RateCounter = Depends(get_rate_counter),
):
    return _generate(request, GenerationRequest.from_body(body, OutputKind.NOTES), generator, counter)
