"""
Classified generation failures and their HTTP treatment
"""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_REQUEST = "invalid_request"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    MALFORMED_RESPONSE = "malformed_response"
    NOT_AN_ARRAY = "not_an_array"
    NO_VALID_ITEMS = "no_valid_items"
    RATE_LIMITED = "rate_limited"


# kind -> (status code, caller-visible message)
ERROR_RESPONSES = {
    ErrorKind.INVALID_REQUEST: (400, "Invalid input provided"),
    ErrorKind.PROVIDER_UNAVAILABLE: (503, "AI service temporarily unavailable. Please try again later."),
    ErrorKind.MALFORMED_RESPONSE: (
        500,
        "The AI generated an invalid response. Please try rephrasing your input or try again.",
    ),
    ErrorKind.NOT_AN_ARRAY: (
        500,
        "The AI generated an invalid response. Please try rephrasing your input or try again.",
    ),
    ErrorKind.NO_VALID_ITEMS: (
        400,
        "Unable to generate valid content from this input. "
        "Please try providing more detailed or educational content.",
    ),
    ErrorKind.RATE_LIMITED: (429, "Too many requests. Please try again later."),
}


def error_response_for(kind: ErrorKind) -> tuple[int, str]:
    return ERROR_RESPONSES[kind]


class GenerationError(Exception):
    """Base class for failures that carry an ErrorKind."""

    kind: ErrorKind = ErrorKind.MALFORMED_RESPONSE

    def __init__(self, message: str = "", kind: ErrorKind | None = None):
        super().__init__(message or self.__class__.__name__)
        if kind is not None:
            self.kind = kind


class ProviderError(GenerationError):
    kind = ErrorKind.PROVIDER_UNAVAILABLE


class MalformedResponse(GenerationError):
    kind = ErrorKind.MALFORMED_RESPONSE


class NotAnArray(GenerationError):
    kind = ErrorKind.NOT_AN_ARRAY


class NoValidItems(GenerationError):
    kind = ErrorKind.NO_VALID_ITEMS
