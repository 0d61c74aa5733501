from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # core
    ENV: str = "dev"
    API_PREFIX: str = "/api"

    # database & redis
    # Plain strings so sqlite:// and redis:// URLs are always accepted
    DATABASE_URL: str
    REDIS_URL: str

    # llm / ai-grounded acquisition
    OPENROUTER_API_KEY: str | None = None
    OPENAI_API_KEY: str | None = None  # Required by the openai_web strategy
    OPENAI_WEB_MODEL: str | None = None  # Optional override for web search model
    OPENAI_WEB_TIMEOUT_SECONDS: int = 120
    LLM_MODEL: str = "gpt-4.1-mini"
    # Hard cap on concurrent LLM calls per process
    LLM_MAX_CONCURRENCY: int = 4

    # acquisition
    ACQUISITION_STRATEGY: str = "openai_web"  # or "browser_search"
    DEFAULT_ACQUISITION_PERIOD: str = "last_30_days"
    BROWSER_SEARCH_QUERY_TEMPLATE: str = '"{company}" reclamações avaliações'
    BROWSER_RESULT_TIMEOUT_SECONDS: int = 10
    BROWSER_NAVIGATION_TIMEOUT_SECONDS: int = 60

    # ingestion
    TOPIC_EXTRACTION_ENABLED: bool = False
    PERSIST_RUN_REPORTS: bool = True
    # Minimum gap between two refreshes of the same company; <= 0 disables the throttle
    REFRESH_MIN_INTERVAL_SECONDS: int = 300
    SCHEDULED_REFRESH_ENABLED: bool = False

    # public sample endpoint
    SAMPLE_CACHE_TTL_SECONDS: int = 60 * 60 * 24

    # auth / security
    API_AUTH_KEY: str | None = None
    FRONTEND_ORIGIN: str | None = None
    # Explicit debug-only switch for wide-open CORS in non-prod envs
    CORS_ALLOW_ALL_ORIGINS: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
