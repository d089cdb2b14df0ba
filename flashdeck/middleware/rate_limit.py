"""
Rate limiting middleware using slowapi
"""
from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
import structlog

from flashdeck.services.logging import client_address

logger = structlog.get_logger()

# Create limiter instance
limiter = Limiter(
    key_func=client_address,
    default_limits=["1000/hour", "100/minute"]
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Rate limit exceeded handler returning the API's error body"""
    logger.warning(f"Rate limit exceeded for {client_address(request)}: {exc.detail}")
    return JSONResponse(
        status_code=429,
        content={"error": "Too many requests. Please wait a moment before trying again."},
    )


def ai_generation_limit():
    """Rate limit for AI generation endpoints"""
    return limiter.limit("10/minute")


def upload_limit():
    """Rate limit for file extraction endpoints"""
    return limiter.limit("30/minute")
