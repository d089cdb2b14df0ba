from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
import time
import structlog

from flashdeck.config import settings
from flashdeck.models import MISSING_FIELD_MESSAGES
from flashdeck.routers import generate as generate_router
from flashdeck.routers import upload as upload_router
from flashdeck.services.logging import configure_logging, log_api_request
from flashdeck.services.monitoring import health_checker, get_metrics, REQUEST_COUNT, REQUEST_DURATION
from flashdeck.middleware.rate_limit import limiter, rate_limit_exceeded_handler

# Configure logging
configure_logging()
logger = structlog.get_logger()

app = FastAPI(
    title="FlashDeck",
    description="Turns study material into AI-generated flashcards, quizzes and notes",
    version="1.0.0"
)

SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self'; "
        "style-src 'self' 'unsafe-inline' https://cdn.tailwindcss.com; "
        "script-src 'self' 'unsafe-inline'; "
        "img-src 'self' data: https:"
    ),
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
}

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# Add rate limiting
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


# ----------------- Error bodies -----------------
def _validation_message(exc: RequestValidationError) -> str:
    for err in exc.errors():
        if err.get("type") == "value_error":
            return str(err["ctx"]["error"])
        field = err["loc"][-1] if err.get("loc") else None
        if field in MISSING_FIELD_MESSAGES:
            return MISSING_FIELD_MESSAGES[field]
    return "Invalid request body"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": _validation_message(exc)})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = "Endpoint not found" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"error": message}, headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    log_api_request(request, error=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "An unexpected error occurred. Please try again."},
        headers=SECURITY_HEADERS,
    )


# Add middleware for request logging, metrics and security headers
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()

    # Log request start
    log_api_request(request)

    response = await call_next(request)

    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)

    # Update metrics
    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code
    ).inc()

    REQUEST_DURATION.labels(
        method=request.method,
        endpoint=request.url.path
    ).observe(process_time)

    # Log request completion
    response.response_time = process_time
    log_api_request(request, response)

    return response


# ----------------- Health & Monitoring Endpoints -----------------
@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return health_checker.get_health_status()


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint"""
    return get_metrics()


# ----------------- Routers -----------------
app.include_router(generate_router.router)
app.include_router(upload_router.router)
