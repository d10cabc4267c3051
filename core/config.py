"""
Core configuration module for environment variables and settings management.

Design choices:
- Uses python-dotenv to load environment variables from a .env file when present.
- Avoids pydantic BaseSettings to keep dependencies minimal and compatible with pydantic v1/v2.
- Provides a single get_settings() accessor with LRU caching to avoid repeated parsing.
- Retry/backoff knobs live here so the search and LLM clients share one source of truth.
"""
from __future__ import annotations

import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from services.retry_policy import RetryPolicy


class Settings(BaseModel):
    environment: str = "dev"

    # Brave web search
    brave_api_key: Optional[str] = None
    brave_api_base: str = "https://api.search.brave.com/res/v1"
    search_timeout: float = 15.0
    search_max_retries: int = 3
    search_base_delay: float = 5.0
    search_max_delay: float = 30.0
    search_rate_limit_delay: float = 10.0
    search_rate_limit_max_delay: float = 60.0
    # Pause between consecutive queries of one batch, keeps us under Brave's rate limit
    search_query_interval: float = 2.0
    search_concurrency: int = 1

    # SiliconFlow chat completions (OpenAI compatible)
    siliconflow_api_key: Optional[str] = None
    llm_api_base: str = "https://api.siliconflow.cn/v1"
    llm_model: str = "Qwen/Qwen2.5-7B-Instruct"
    llm_timeout: float = 20.0
    llm_max_retries: int = 3
    llm_base_delay: float = 5.0
    llm_max_delay: float = 30.0
    llm_rate_limit_delay: float = 15.0
    llm_rate_limit_max_delay: float = 120.0

    # Persistence
    database_url: str = "sqlite:///./learning_paths.db"
    record_fetch_timeout: float = 10.0
    record_fetch_retries: int = 3
    record_fetch_retry_delay: float = 1.0

    # API versioning (useful for mounting routers and future deprecations)
    api_v1_prefix: str = "/api"
    cors_origins: List[str] = ["*"]

    def search_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.search_max_retries,
            base_delay=self.search_base_delay,
            max_delay=self.search_max_delay,
            rate_limit_delay=self.search_rate_limit_delay,
            rate_limit_max_delay=self.search_rate_limit_max_delay,
        )

    def llm_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.llm_max_retries,
            base_delay=self.llm_base_delay,
            max_delay=self.llm_max_delay,
            rate_limit_delay=self.llm_rate_limit_delay,
            rate_limit_max_delay=self.llm_rate_limit_max_delay,
        )


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load environment variables (from .env if present) and build a Settings object.

    This function is cached so app startup and repeated imports are efficient.
    """
    load_dotenv()  # no-op if .env not present
    return Settings(
        environment=os.getenv("ENVIRONMENT", "dev"),
        brave_api_key=os.getenv("BRAVE_API_KEY"),
        brave_api_base=os.getenv("BRAVE_API_BASE", "https://api.search.brave.com/res/v1"),
        search_timeout=float(os.getenv("SEARCH_TIMEOUT", "15")),
        search_max_retries=int(os.getenv("SEARCH_MAX_RETRIES", "3")),
        search_base_delay=float(os.getenv("SEARCH_BASE_DELAY", "5")),
        search_max_delay=float(os.getenv("SEARCH_MAX_DELAY", "30")),
        search_rate_limit_delay=float(os.getenv("SEARCH_RATE_LIMIT_DELAY", "10")),
        search_rate_limit_max_delay=float(os.getenv("SEARCH_RATE_LIMIT_MAX_DELAY", "60")),
        search_query_interval=float(os.getenv("SEARCH_QUERY_INTERVAL", "2")),
        search_concurrency=int(os.getenv("SEARCH_CONCURRENCY", "1")),
        siliconflow_api_key=os.getenv("SILICONFLOW_API_KEY"),
        llm_api_base=os.getenv("LLM_API_BASE", "https://api.siliconflow.cn/v1"),
        llm_model=os.getenv("LLM_MODEL", "Qwen/Qwen2.5-7B-Instruct"),
        llm_timeout=float(os.getenv("LLM_TIMEOUT", "20")),
        llm_max_retries=int(os.getenv("LLM_MAX_RETRIES", "3")),
        llm_base_delay=float(os.getenv("LLM_BASE_DELAY", "5")),
        llm_max_delay=float(os.getenv("LLM_MAX_DELAY", "30")),
        llm_rate_limit_delay=float(os.getenv("LLM_RATE_LIMIT_DELAY", "15")),
        llm_rate_limit_max_delay=float(os.getenv("LLM_RATE_LIMIT_MAX_DELAY", "120")),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./learning_paths.db"),
        record_fetch_timeout=float(os.getenv("RECORD_FETCH_TIMEOUT", "10")),
        record_fetch_retries=int(os.getenv("RECORD_FETCH_RETRIES", "3")),
        record_fetch_retry_delay=float(os.getenv("RECORD_FETCH_RETRY_DELAY", "1")),
        api_v1_prefix=os.getenv("API_V1_PREFIX", "/api"),
        cors_origins=_split_csv(os.getenv("CORS_ORIGINS", "*")),
    )
