from __future__ import annotations

import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv


load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


class Settings:
    """Application settings loaded from environment variables.

    Keep all credentials and config centralized here.
    """

    app_env: str = os.getenv("APP_ENV", "development")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    cors_origins: List[str] = _env_list("CORS_ORIGINS", "http://localhost:3000")

    # Gemini
    google_api_key: Optional[str] = os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY")
    gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")
    embedding_model: str = os.getenv("EMBEDDING_MODEL", "models/embedding-001")
    temperature: float = float(os.getenv("MODEL_TEMPERATURE", "0.7"))
    top_p: float = float(os.getenv("MODEL_TOP_P", "0.8"))
    top_k: int = int(os.getenv("MODEL_TOP_K", "40"))
    max_output_tokens: int = int(os.getenv("MODEL_MAX_OUTPUT_TOKENS", "2048"))

    # External search APIs
    news_api_key: Optional[str] = os.getenv("NEWS_API_KEY")
    news_api_url: str = os.getenv("NEWS_API_URL", "https://newsapi.org/v2")
    serper_api_key: Optional[str] = os.getenv("SERPER_API_KEY")
    serper_api_url: str = os.getenv("SERPER_API_URL", "https://google.serper.dev/search")
    http_timeout: float = float(os.getenv("HTTP_TIMEOUT", "10.0"))

    # Supabase
    supabase_url: Optional[str] = os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL")
    supabase_service_key: Optional[str] = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    supabase_anon_key: Optional[str] = os.getenv("SUPABASE_ANON_KEY") or os.getenv(
        "NEXT_PUBLIC_SUPABASE_ANON_KEY"
    )

    # Memory
    memory_threshold: float = float(os.getenv("MEMORY_THRESHOLD", "0.7"))
    max_memories: int = int(os.getenv("MAX_MEMORIES", "5"))

    # Feature flags
    enable_real_time_data: bool = _env_bool("ENABLE_REAL_TIME_DATA", True)
    enable_memory: bool = _env_bool("ENABLE_MEMORY", True)

    # Auth
    auth_enabled: bool = _env_bool("AUTH_ENABLED", True)
    auth_cookie_name: str = os.getenv("AUTH_COOKIE_NAME", "sb-access-token")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
