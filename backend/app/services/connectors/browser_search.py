# backend/app/services/connectors/browser_search.py

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple
from urllib.parse import quote_plus, urlparse

from playwright.async_api import async_playwright

from .base import (
    AcquisitionResult,
    AcquisitionStrategy,
    DEFAULT_PERIOD,
    FeedbackItem,
    GroundingSource,
    dedupe_sources,
)
from ...core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

BING_SEARCH_URL = "https://www.bing.com/search"
RESULT_BLOCK_SELECTOR = "li.b_algo"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)
# Microsoft promo redirects and Bing ad clicks
AD_URL_PREFIXES = (
    "http://go.microsoft.com",
    "https://go.microsoft.com",
    "http://www.bing.com/aclk",
    "https://www.bing.com/aclk",
)

# Runs inside the page for each result block
EXTRACT_BLOCK_JS = """
(el) => {
  const link = el.querySelector('a');
  const title = el.querySelector('h2');
  const snippet = el.querySelector('.b_caption p');
  return {
    url: link ? link.href : '',
    title: title ? title.textContent : '',
    snippet: snippet ? snippet.textContent : '',
  };
}
"""

Launcher = Callable[[], Awaitable[Tuple[Any, Any]]]


async def _launch_chromium() -> Tuple[Any, Any]:
    playwright = await async_playwright().start()
    browser = await playwright.chromium.launch(
        headless=True,
        args=[
            "--disable-blink-features=AutomationControlled",
            "--no-sandbox",
            "--disable-dev-shm-usage",
        ],
        timeout=settings.BROWSER_NAVIGATION_TIMEOUT_SECONDS * 1000,
    )
    return playwright, browser


class SharedBrowser:
    """
    Process-lifetime browser handle, launched on first use.

    Concurrent first callers wait on the same lock so Chromium is launched
    once; a browser that has disconnected is relaunched on the next call.
    Only browsing contexts are per-request.
    """

    def __init__(self, launcher: Launcher | None = None) -> None:
        self._launcher = launcher or _launch_chromium
        self._playwright: Any = None
        self._browser: Any = None
        self._lock = asyncio.Lock()

    def _is_ready(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def get(self) -> Any:
        if self._is_ready():
            return self._browser

        async with self._lock:
            if not self._is_ready():
                await self._shutdown()
                self._playwright, self._browser = await self._launcher()
                logger.info("Playwright browser launched", extra={"strategy": "browser_search"})
        return self._browser

    async def _shutdown(self) -> None:
        browser, playwright = self._browser, self._playwright
        self._browser = None
        self._playwright = None
        if browser is not None and browser.is_connected():
            await browser.close()
        if playwright is not None:
            await playwright.stop()

    async def close(self) -> None:
        async with self._lock:
            had_browser = self._browser is not None
            await self._shutdown()
        if had_browser:
            logger.info("Playwright browser closed", extra={"strategy": "browser_search"})


_shared_browser: SharedBrowser | None = None


def get_shared_browser() -> SharedBrowser:
    global _shared_browser
    if _shared_browser is None:
        _shared_browser = SharedBrowser()
    return _shared_browser


async def shutdown_shared_browser() -> None:
    if _shared_browser is not None:
        await _shared_browser.close()


def result_block_to_item(raw: Any) -> Optional[Tuple[FeedbackItem, GroundingSource]]:
    """
    Turn one extracted result block into a feedback item.

    Blocks missing a url, title or snippet, and ad/redirect links, are dropped.
    """
    if not isinstance(raw, dict):
        return None

    url = str(raw.get("url") or "").strip()
    title = " ".join(str(raw.get("title") or "").split())
    snippet = " ".join(str(raw.get("snippet") or "").split())
    if not url or not title or not snippet:
        return None
    if url.startswith(AD_URL_PREFIXES):
        return None

    host = urlparse(url).hostname
    if not host:
        return None

    item = FeedbackItem(
        text=f"{title}. {snippet}",
        source=host,
        url=url,
        author=host,
    )
    return item, GroundingSource(uri=url, title=title)


class BrowserSearchStrategy(AcquisitionStrategy):
    """
    Best-effort acquisition by scraping a Bing results page.

    Search snippets carry no polarity, so items are emitted without a type
    and normalise to NEUTRAL. Bing offers no reliable date filter, so the
    period hint is ignored. Any failure returns an empty result.
    """

    name = "browser_search"

    def __init__(
        self,
        browser: SharedBrowser | None = None,
        query_template: str | None = None,
    ) -> None:
        self._browser = browser or get_shared_browser()
        self._query_template = query_template or settings.BROWSER_SEARCH_QUERY_TEMPLATE

    def build_search_url(self, company_name: str) -> str:
        query = self._query_template.format(company=company_name)
        return f"{BING_SEARCH_URL}?q={quote_plus(query)}"

    @asynccontextmanager
    async def _browsing_context(self) -> AsyncIterator[Any]:
        browser = await self._browser.get()
        context = await browser.new_context(
            user_agent=USER_AGENT,
            viewport={"width": 1920, "height": 1080},
        )
        try:
            yield context
        finally:
            await context.close()

    async def _scrape(self, url: str) -> List[Dict[str, Any]]:
        async with self._browsing_context() as context:
            page = await context.new_page()
            await page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=settings.BROWSER_NAVIGATION_TIMEOUT_SECONDS * 1000,
            )
            await page.wait_for_selector(
                RESULT_BLOCK_SELECTOR,
                state="attached",
                timeout=settings.BROWSER_RESULT_TIMEOUT_SECONDS * 1000,
            )
            blocks = await page.locator(RESULT_BLOCK_SELECTOR).all()

            raw_blocks: List[Dict[str, Any]] = []
            for block in blocks:
                raw_blocks.append(await block.evaluate(EXTRACT_BLOCK_JS))
            return raw_blocks

    async def acquire(self, company_name: str, period: str = DEFAULT_PERIOD) -> AcquisitionResult:
        url = self.build_search_url(company_name)
        try:
            raw_blocks = await self._scrape(url)
        except Exception as e:
            logger.warning(
                "Scraping failed for %s: %s",
                url,
                e,
                extra={"strategy": self.name, "step": "scrape"},
            )
            return AcquisitionResult.empty()

        items: List[FeedbackItem] = []
        sources: List[GroundingSource] = []
        for raw in raw_blocks:
            parsed = result_block_to_item(raw)
            if parsed is None:
                continue
            item, source = parsed
            items.append(item)
            sources.append(source)

        logger.info(
            "Scraped %d usable results for '%s'",
            len(items),
            company_name,
            extra={"strategy": self.name, "step": "acquire"},
        )
        return AcquisitionResult(items=items, sources=dedupe_sources(sources))
