"""
Health checks and monitoring with Prometheus metrics
"""
import time

import psutil
import structlog
from fastapi.responses import Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

from flashdeck.config import settings

logger = structlog.get_logger()

# Prometheus metrics
REQUEST_COUNT = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
REQUEST_DURATION = Histogram('http_request_duration_seconds', 'HTTP request duration', ['method', 'endpoint'])
AI_GENERATION_REQUESTS = Counter('ai_generation_requests_total', 'Total AI generation requests', ['type', 'status'])
REGENERATION_ATTEMPTS = Counter('ai_regeneration_attempts_total', 'Expert-level regeneration attempts', ['outcome'])


class HealthChecker:
    def __init__(self):
        self.start_time = time.time()

    def check_rate_counter(self) -> dict:
        """Check the generation counter backend"""
        from flashdeck.services.rate_counter import rate_counter

        try:
            if rate_counter.redis_client is None:
                return {
                    "status": "healthy",
                    "message": "Using in-memory counter",
                    "backend": "memory"
                }
            rate_counter.redis_client.ping()
            return {
                "status": "healthy",
                "message": "Redis counter reachable",
                "backend": "redis"
            }
        except Exception as e:
            logger.error(f"Rate counter health check failed: {e}")
            return {
                "status": "unhealthy",
                "message": f"Rate counter unavailable: {str(e)}"
            }

    def check_model_provider(self) -> dict:
        """Check that a model provider is configured"""
        if settings.MOCK_MODE:
            return {"status": "healthy", "message": "Mock mode", "model": settings.OPENAI_MODEL}
        if not settings.OPENAI_API_KEY:
            return {"status": "unhealthy", "message": "OPENAI_API_KEY not set", "model": settings.OPENAI_MODEL}
        return {"status": "healthy", "message": "API key configured", "model": settings.OPENAI_MODEL}

    def get_system_metrics(self) -> dict:
        """Get process resource metrics"""
        try:
            memory = psutil.virtual_memory()
            return {
                "cpu_percent": psutil.cpu_percent(interval=None),
                "memory_percent": memory.percent,
                "memory_available_gb": round(memory.available / (1024**3), 2),
                "uptime_seconds": time.time() - self.start_time
            }
        except Exception as e:
            logger.error(f"System metrics collection failed: {e}")
            return {"error": str(e)}

    def get_health_status(self) -> dict:
        """Get overall health status"""
        checks = {
            "rate_counter": self.check_rate_counter(),
            "model_provider": self.check_model_provider(),
        }

        unhealthy_checks = [name for name, check in checks.items() if check["status"] == "unhealthy"]

        return {
            "status": "OK" if not unhealthy_checks else "DEGRADED",
            "timestamp": time.time(),
            "checks": checks,
            "system_metrics": self.get_system_metrics(),
            "unhealthy_components": unhealthy_checks
        }


# Global health checker instance
health_checker = HealthChecker()


def get_metrics():
    """Get Prometheus metrics"""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
