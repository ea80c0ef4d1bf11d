"""Configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .security import redact_env_snapshot

_LLM_PROVIDERS = {"gemini", "ollama", "simulated"}
_LOG_FORMATS = {"console", "json"}


@dataclass(frozen=True)
class Settings:
    """Runtime settings loaded from environment variables."""

    gemini_api_key: str
    gemini_model: str
    llm_provider: str
    ollama_model: str
    ollama_base_url: str
    news_api_key: str
    openweather_api_key: str
    rapidapi_key: str
    database_url: str
    ingest_interval_minutes: float
    max_concurrent_requests: int
    http_timeout_seconds: float
    http_retries: int
    http_retry_delay_seconds: float
    log_level: str
    log_format: str

    @property
    def ai_classification_enabled(self) -> bool:
        if self.llm_provider == "gemini":
            return bool(self.gemini_api_key)
        return self.llm_provider == "ollama"

    def redacted_snapshot(self) -> dict[str, object]:
        """Return safe-to-log config snapshot with sensitive values masked."""
        return redact_env_snapshot(
            {
                "GEMINI_API_KEY": self.gemini_api_key,
                "GEMINI_MODEL": self.gemini_model,
                "LLM_PROVIDER": self.llm_provider,
                "OLLAMA_MODEL": self.ollama_model,
                "OLLAMA_BASE_URL": self.ollama_base_url,
                "NEWS_API_KEY": self.news_api_key,
                "OPENWEATHER_API_KEY": self.openweather_api_key,
                "RAPIDAPI_KEY": self.rapidapi_key,
                "DATABASE_URL": self.database_url,
                "INGEST_INTERVAL_MINUTES": self.ingest_interval_minutes,
                "MAX_CONCURRENT_REQUESTS": self.max_concurrent_requests,
                "HTTP_TIMEOUT_SECONDS": self.http_timeout_seconds,
                "HTTP_RETRIES": self.http_retries,
                "HTTP_RETRY_DELAY_SECONDS": self.http_retry_delay_seconds,
                "LOG_LEVEL": self.log_level,
                "LOG_FORMAT": self.log_format,
            }
        )

    @classmethod
    def from_env(cls) -> "Settings":
        gemini_api_key = os.getenv("GEMINI_API_KEY", "").strip()
        gemini_model = os.getenv("GEMINI_MODEL", "gemini-1.5-flash").strip() or "gemini-1.5-flash"
        llm_provider = os.getenv("LLM_PROVIDER", "gemini").strip().lower() or "gemini"
        ollama_model = os.getenv("OLLAMA_MODEL", "llama3").strip() or "llama3"
        ollama_base_url = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434").strip()
        if not ollama_base_url:
            ollama_base_url = "http://localhost:11434"
        news_api_key = os.getenv("NEWS_API_KEY", "").strip()
        openweather_api_key = os.getenv("OPENWEATHER_API_KEY", "").strip()
        rapidapi_key = os.getenv("RAPIDAPI_KEY", "").strip()
        database_url = os.getenv("DATABASE_URL", "").strip()
        ingest_interval_minutes = float(os.getenv("INGEST_INTERVAL_MINUTES", "15"))
        max_concurrent_requests = int(os.getenv("MAX_CONCURRENT_REQUESTS", "5"))
        http_timeout_seconds = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))
        http_retries = int(os.getenv("HTTP_RETRIES", "3"))
        http_retry_delay_seconds = float(os.getenv("HTTP_RETRY_DELAY_SECONDS", "1.0"))
        log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
        log_format = os.getenv("LOG_FORMAT", "console").strip().lower() or "console"

        if llm_provider not in _LLM_PROVIDERS:
            raise ValueError("LLM_PROVIDER must be one of 'gemini', 'ollama' or 'simulated'.")
        if ingest_interval_minutes <= 0:
            raise ValueError("INGEST_INTERVAL_MINUTES must be greater than 0.")
        if max_concurrent_requests < 1:
            raise ValueError("MAX_CONCURRENT_REQUESTS must be at least 1.")
        if http_timeout_seconds <= 0:
            raise ValueError("HTTP_TIMEOUT_SECONDS must be greater than 0.")
        if http_retries < 1:
            raise ValueError("HTTP_RETRIES must be at least 1.")
        if http_retry_delay_seconds < 0:
            raise ValueError("HTTP_RETRY_DELAY_SECONDS must not be negative.")
        if log_format not in _LOG_FORMATS:
            raise ValueError("LOG_FORMAT must be either 'console' or 'json'.")

        return cls(
            gemini_api_key=gemini_api_key,
            gemini_model=gemini_model,
            llm_provider=llm_provider,
            ollama_model=ollama_model,
            ollama_base_url=ollama_base_url,
            news_api_key=news_api_key,
            openweather_api_key=openweather_api_key,
            rapidapi_key=rapidapi_key,
            database_url=database_url,
            ingest_interval_minutes=ingest_interval_minutes,
            max_concurrent_requests=max_concurrent_requests,
            http_timeout_seconds=http_timeout_seconds,
            http_retries=http_retries,
            http_retry_delay_seconds=http_retry_delay_seconds,
            log_level=log_level,
            log_format=log_format,
        )
