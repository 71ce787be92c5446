"""Timeout-guarded page fetching with Playwright and a probe cache.

Features:
- One Playwright page per request in a shared browser context
- Fixed identifying user agent, redirects followed by the browser
- Failures (timeout, network error, non-text content) become status 0
- Optional on-disk cache for subpage probes
- Outbound link extraction with BeautifulSoup
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from playwright.async_api import BrowserContext, Page, TimeoutError as PlaywrightTimeout
from playwright.async_api import async_playwright

from leadharvest.crawler.cache import ProbeCache
from leadharvest.models import FetchResult

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Lead-Harvester/1.0 (outreach research)"

_TEXT_CONTENT_TYPES = ("text/", "application/xhtml+xml", "application/xml")


def is_text_content(content_type: str) -> bool:
    """Whether a Content-Type header denotes a text document."""
    if not content_type:
        return True
    ctype = content_type.lower()
    return any(ctype.startswith(t) for t in _TEXT_CONTENT_TYPES)


def extract_links(html: str, base_url: str) -> list[str]:
    """Extract absolute http(s) links from HTML, in document order."""
    soup = BeautifulSoup(html, "lxml")
    links = []
    for tag in soup.find_all("a", href=True):
        href = tag["href"].strip()
        if not href or href.startswith("#") or href.startswith("javascript:"):
            continue
        try:
            full_url = urljoin(base_url, href)
            scheme = urlparse(full_url).scheme
        except ValueError:
            logger.debug("Skipping malformed link %r", href)
            continue
        if scheme in ("http", "https"):
            links.append(full_url)
    return links


async def _fetch_page(
    context: BrowserContext,
    url: str,
    timeout_ms: int,
    render_wait_ms: int = 0,
) -> tuple[str, int, Optional[str]]:
    """Fetch a page using Playwright and return (html, status, error).

    Args:
        context: Playwright browser context.
        url: URL to fetch.
        timeout_ms: Navigation timeout in milliseconds.
        render_wait_ms: Extra time allowed for JS rendering after DOM load.

    Returns:
        Tuple of (html_content, http_status, error_message_or_none).
    """
    page: Optional[Page] = None
    try:
        page = await context.new_page()
        response = await page.goto(url, timeout=timeout_ms, wait_until="domcontentloaded")
        if response is None:
            return "", 0, "no response"

        content_type = await response.header_value("content-type") or ""
        if not is_text_content(content_type):
            return "", 0, f"non-text content: {content_type}"

        if render_wait_ms:
            try:
                await page.wait_for_load_state("networkidle", timeout=render_wait_ms)
            except PlaywrightTimeout:
                pass  # Use whatever content loaded

        html = await page.content()
        return html, response.status, None

    except PlaywrightTimeout:
        return "", 0, f"timeout after {timeout_ms}ms"

    except Exception as e:
        return "", 0, str(e)[:300]

    finally:
        if page:
            try:
                await page.close()
            except Exception:
                pass


class PageFetcher:
    """Fetch pages through a shared browser context, optionally via the probe cache."""

    def __init__(
        self,
        context: Optional[BrowserContext],
        cache: Optional[ProbeCache] = None,
        render_wait_ms: int = 0,
    ):
        """Initialize with a browser context (None disables network access)."""
        self.context = context
        self.cache = cache
        self.render_wait_ms = render_wait_ms

    async def fetch(
        self,
        url: str,
        timeout_ms: int,
        use_cache: bool = False,
        identity: Optional[str] = None,
    ) -> FetchResult:
        """Fetch a URL; never raises.

        Args:
            url: Absolute URL to fetch.
            timeout_ms: Abandon the request after this many milliseconds.
            use_cache: Serve from / write to the probe cache.
            identity: Cache key identity; defaults to the URL's hostname.

        Returns:
            FetchResult; status 0 and an empty body on any failure.
        """
        parsed = urlparse(url)
        cache_identity = identity or (parsed.hostname or "")
        cache_path = parsed.path or "/"

        if use_cache and self.cache is not None:
            cached = self.cache.get(cache_identity, cache_path)
            if cached is not None:
                logger.debug("Cache hit: %s", url)
                return cached

        # Primary pages get time to render; probes are plain document loads.
        render_wait = 0 if use_cache else self.render_wait_ms
        status, body = await self._get(url, timeout_ms, render_wait)
        result = FetchResult(status=status, body=body)

        if use_cache and self.cache is not None and 200 <= status < 400:
            self.cache.put(cache_identity, cache_path, status, body)

        return result

    async def _get(self, url: str, timeout_ms: int, render_wait_ms: int = 0) -> tuple[int, str]:
        """Perform the network request; returns (status, body)."""
        if self.context is None:
            return 0, ""
        html, status, error = await _fetch_page(self.context, url, timeout_ms, render_wait_ms)
        if error:
            logger.debug("Fetch failed for %s: %s", url, error)
            return 0, ""
        logger.debug("Fetched %s status=%d chars=%d", url, status, len(html))
        return status, html


@asynccontextmanager
async def open_fetcher(
    user_agent: str = DEFAULT_USER_AGENT,
    cache: Optional[ProbeCache] = None,
    headless: bool = True,
    render_wait_ms: int = 0,
) -> AsyncIterator[PageFetcher]:
    """Launch a headless browser and yield a PageFetcher bound to it."""
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=headless)
        logger.info("Browser launched (headless=%s)", headless)
        context = await browser.new_context(user_agent=user_agent)
        try:
            yield PageFetcher(context, cache=cache, render_wait_ms=render_wait_ms)
        finally:
            await context.close()
            await browser.close()
