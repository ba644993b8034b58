from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

from services.errors import ConfigurationError


def _load_env() -> None:
    # Centralized dotenv loading; safe if .env missing
    load_dotenv()


def _as_bool(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    # Core/runtime
    db_path: str
    run_env: str
    log_level: str

    # Network-graph provider
    network_graph_api_key: str | None
    network_graph_url: str
    network_graph_page_size: int
    network_graph_max_pages: int

    # Person enrichment provider
    enrichment_api_key: str | None
    enrichment_url: str

    # AI relevance matching
    openai_api_key: str | None
    openai_model: str | None
    ai_enabled: bool
    ai_max_candidates: int

    # Rate limiting / retries / timeouts
    item_delay_seconds: float
    rate_limit_backoff_seconds: float
    max_rate_limit_retries: int
    http_timeout_seconds: int

    # Scoring
    warm_intro_threshold: int
    top_paths_limit: int

    # Per-team sync lease
    sync_lease_ttl_seconds: int

    # Logging/tracing
    llm_trace: bool = False
    llm_log_path: str = "logs/llm_calls.jsonl"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    _load_env()
    ai_enabled = _as_bool(os.getenv("AI_ENABLED", "false"))
    openai_api_key = os.getenv("OPENAI_API_KEY")

    if ai_enabled and not openai_api_key:
        raise ConfigurationError("OPENAI_API_KEY required when AI_ENABLED=true")

    max_retries = int(os.getenv("MAX_RATE_LIMIT_RETRIES", "3"))
    if max_retries < 1:
        raise ConfigurationError("MAX_RATE_LIMIT_RETRIES must be at least 1")

    return Settings(
        db_path=os.getenv("DB_PATH", "contacts.db"),
        run_env=os.getenv("RUN_ENV", "local"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        network_graph_api_key=os.getenv("NETWORK_GRAPH_API_KEY"),
        network_graph_url=os.getenv("NETWORK_GRAPH_URL", "https://bee.theswarm.com/v2"),
        network_graph_page_size=int(os.getenv("NETWORK_GRAPH_PAGE_SIZE", "100")),
        network_graph_max_pages=int(os.getenv("NETWORK_GRAPH_MAX_PAGES", "5")),
        enrichment_api_key=os.getenv("ENRICHMENT_API_KEY"),
        enrichment_url=os.getenv("ENRICHMENT_URL", "https://api.peopledatalabs.com/v5/person/enrich"),
        openai_api_key=openai_api_key,
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        ai_enabled=ai_enabled,
        ai_max_candidates=int(os.getenv("AI_MAX_CANDIDATES", "50")),
        item_delay_seconds=float(os.getenv("ITEM_DELAY_SECONDS", "0.2")),
        rate_limit_backoff_seconds=float(os.getenv("RATE_LIMIT_BACKOFF_SECONDS", "60")),
        max_rate_limit_retries=max_retries,
        http_timeout_seconds=int(os.getenv("HTTP_TIMEOUT_SECONDS", "20")),
        warm_intro_threshold=int(os.getenv("WARM_INTRO_THRESHOLD", "50")),
        top_paths_limit=int(os.getenv("TOP_PATHS_LIMIT", "5")),
        sync_lease_ttl_seconds=int(os.getenv("SYNC_LEASE_TTL_SECONDS", "3600")),
        llm_trace=_as_bool(os.getenv("LLM_TRACE", "false")),
        llm_log_path=os.getenv("LLM_LOG_PATH", "logs/llm_calls.jsonl"),
    )
