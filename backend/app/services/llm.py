from __future__ import annotations

from functools import lru_cache
from contextlib import contextmanager
from threading import BoundedSemaphore

from openai import OpenAI

from ..core.config import get_settings

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

_llm_semaphore: BoundedSemaphore | None = None


def _get_semaphore() -> BoundedSemaphore:
    global _llm_semaphore
    if _llm_semaphore is None:
        _llm_semaphore = BoundedSemaphore(get_settings().LLM_MAX_CONCURRENCY)
    return _llm_semaphore


@contextmanager
def limit_llm_concurrency():
    """
    Shared cap on in-flight model calls (web searches and topic tagging alike).

    Enter it in the worker thread that performs the request:

        with limit_llm_concurrency():
            client.responses.create(...)
    """
    sem = _get_semaphore()
    sem.acquire()
    try:
        yield
    finally:
        sem.release()


@lru_cache(maxsize=1)
def get_llm_client() -> OpenAI:
    """
    Chat-completions client for topic tagging.

    OpenRouter is preferred when OPENROUTER_API_KEY is set; otherwise the
    plain OpenAI API is used. Raises RuntimeError when neither key exists.
    """
    settings = get_settings()

    if settings.OPENROUTER_API_KEY:
        return OpenAI(
            base_url=OPENROUTER_BASE_URL,
            api_key=settings.OPENROUTER_API_KEY.strip(),
            default_headers={
                "HTTP-Referer": settings.FRONTEND_ORIGIN or "http://localhost:3000",
                "X-Title": "Reputation Pulse",
            },
        )

    if settings.OPENAI_API_KEY:
        return OpenAI(api_key=settings.OPENAI_API_KEY.strip())

    raise RuntimeError(
        "No LLM API key configured. Set either OPENAI_API_KEY or OPENROUTER_API_KEY."
    )


@lru_cache(maxsize=1)
def get_web_search_client() -> OpenAI:
    """
    Responses API client for grounded web search.

    Always talks to OpenAI directly: the web_search tool is not available
    through OpenRouter.
    """
    settings = get_settings()
    if not settings.OPENAI_API_KEY:
        raise RuntimeError("OPENAI_API_KEY is not configured")
    return OpenAI(
        api_key=settings.OPENAI_API_KEY.strip(),
        timeout=settings.OPENAI_WEB_TIMEOUT_SECONDS,
    )
