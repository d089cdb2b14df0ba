from __future__ import annotations

import os
from typing import List


def _env_bool(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings:
    """Process-wide settings read from the environment once at import."""

    def __init__(self) -> None:
        # Model provider
        self.OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
        self.OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.MOCK_MODE = _env_bool("MOCK_MODE")
        self.LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))
        self.LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "2048"))

        # Per-client generation quota
        self.REDIS_URL = os.getenv("REDIS_URL", "")
        self.GENERATION_QUOTA = int(os.getenv("GENERATION_QUOTA", "10"))
        self.GENERATION_WINDOW_SECONDS = int(os.getenv("GENERATION_WINDOW_SECONDS", "900"))

        # Only behind a proxy that sets these headers itself
        self.TRUST_PROXY_HEADERS = _env_bool("TRUST_PROXY_HEADERS")

        # Uploads
        self.MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "10"))

        # CORS
        self.ALLOW_ORIGINS = _env_list(
            "ALLOW_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"
        )


settings = Settings()
