"""
Structured logging configuration
"""
import logging
import sys

import structlog

from flashdeck.config import settings


def configure_logging(level: int = logging.INFO):
    """Configure structured logging"""

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("fastapi").setLevel(logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


def get_logger(name: str = None):
    """Get a structured logger"""
    return structlog.get_logger(name)


def client_address(request) -> str:
    """Client address used for logging and quotas.

    Proxy headers are only honoured when ``TRUST_PROXY_HEADERS`` is set,
    since any client can send them.
    """
    if settings.TRUST_PROXY_HEADERS:
        forwarded = request.headers.get("cf-connecting-ip")
        if forwarded:
            return forwarded.strip()
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"



def log_api_request(request, response=None, error=None):
    """Log API requests and responses"""
    logger = get_logger("api")

    log_data = {
        "method": request.method,
        "path": request.url.path,
        "client_ip": client_address(request),
        "user_agent": request.headers.get("user-agent", "unknown"),
    }

    if response:
        log_data.update({
            "status_code": response.status_code,
            "response_time": getattr(response, "response_time", None)
        })
        logger.info("api_request_completed", **log_data)
    elif error:
        log_data.update({
            "error": str(error),
            "status_code": getattr(error, "status_code", 500)
        })
        logger.error("api_request_failed", **log_data)
    else:
        logger.info("api_request_started", **log_data)
