"""Rendered-page strategies backed by a headless Playwright browser."""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, List, Optional
from urllib.parse import urlparse

from aws_lambda_powertools import Logger

from ..config import ExtractorConfig
from ..exceptions import ParseFailureError, TransientFetchError
from ..http_client import DESKTOP_USER_AGENT, MOBILE_USER_AGENT
from ..models import ExtractionRequest, MediaEntry, MediaKind, StrategyOutcome
from ..signals import (
    entries_from_player_response,
    json_ld_content_urls,
    match_facebook_rules,
)
from ..url_utils import instagram_embed_url, youtube_watch_url
from .base import BaseStrategy

logger = Logger()
import_logger = logging.getLogger(__name__ + ".import")

# Playwright is an optional extra; without it rendered strategies are not built.
PLAYWRIGHT_AVAILABLE = False
async_playwright = None
PlaywrightTimeout = None
stealth_async = None

try:
    from playwright.async_api import TimeoutError as PlaywrightTimeout
    from playwright.async_api import async_playwright

    try:
        from playwright_stealth import stealth_async
    except ImportError as stealth_e:
        import_logger.warning(f"Playwright stealth import failed: {stealth_e}")
        stealth_async = None

    PLAYWRIGHT_AVAILABLE = True
except ImportError as e:
    import_logger.info(f"Playwright not installed, rendered strategies disabled: {e}")

MAX_CAPTURED_URLS = 50
MIN_IMAGE_WIDTH = 150
INSTAGRAM_CDN_FRAGMENTS = ("cdninstagram", "fbcdn")
SETTLE_TIMEOUT_MS = 5000

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--no-zygote",
    "--disable-extensions",
    "--disable-background-timer-throttling",
    "--disable-renderer-backgrounding",
]

# Read-only DOM query; returns candidate media URLs from the live page.
MEDIA_DOM_QUERY = """
({ cdnFragments, minWidth }) => {
  const hasCdn = (u) => cdnFragments.some((f) => u.includes(f));
  const videos = [];
  document.querySelectorAll("video").forEach((video) => {
    if (video.src) videos.push(video.src);
    video.querySelectorAll("source").forEach((source) => {
      if (source.src) videos.push(source.src);
    });
  });
  const ogVideo = document.querySelector('meta[property="og:video"]');
  if (ogVideo && ogVideo.content) videos.push(ogVideo.content);
  const images = Array.from(document.querySelectorAll("img"))
    .filter((img) => img.src && hasCdn(img.src)
      && img.getBoundingClientRect().width > minWidth)
    .map((img) => img.src);
  return { videos, images };
}
"""

PLAYER_RESPONSE_QUERY = "() => window.ytInitialPlayerResponse || null"


def is_instagram_media_url(url: str) -> bool:
    """Heuristic for network responses carrying Instagram video."""
    if not url:
        return False
    parsed = urlparse(url)
    path = parsed.path.lower()
    if ".mp4" in path:
        return True
    host = parsed.netloc.lower()
    return "video" in path and any(fragment in host for fragment in INSTAGRAM_CDN_FRAGMENTS)


def _playable(url: Any) -> bool:
    return isinstance(url, str) and url.startswith("http")


class NetworkCapture:
    """Records matching response URLs for the lifetime of one navigation.

    Used as a context manager around ``page.goto``: the listener is attached
    on entry and detached on exit, and at most ``max_urls`` distinct URLs are
    kept, in the order they were seen.
    """

    def __init__(
        self,
        page: Any,
        predicate: Callable[[str], bool],
        max_urls: int = MAX_CAPTURED_URLS,
    ):
        self.page = page
        self.predicate = predicate
        self.max_urls = max_urls
        self._urls: Dict[str, None] = {}
        self._attached = False

    def _on_response(self, response: Any) -> None:
        if len(self._urls) >= self.max_urls:
            return
        url = getattr(response, "url", "")
        if self.predicate(url):
            self._urls.setdefault(url, None)

    def __enter__(self) -> "NetworkCapture":
        self.page.on("response", self._on_response)
        self._attached = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        if self._attached:
            self.page.remove_listener("response", self._on_response)
            self._attached = False

    def drain(self) -> List[str]:
        """Stop listening and hand over everything captured so far."""
        self.close()
        urls = list(self._urls)
        self._urls.clear()
        return urls


class PlaywrightRenderer:
    """Opens an isolated browser page per extraction call.

    Launches a local headless Chromium, or connects over CDP to the remote
    rendering service named by ``BROWSER_WS_ENDPOINT``. Nothing is shared
    between calls.
    """

    def __init__(self, config: ExtractorConfig):
        self.config = config
        self.logger = logger

    @property
    def available(self) -> bool:
        return PLAYWRIGHT_AVAILABLE and self.config.rendering_enabled

    @asynccontextmanager
    async def open_page(self, user_agent: str = DESKTOP_USER_AGENT) -> AsyncIterator[Any]:
        """Yield a fresh page; page, context and browser are closed on every exit."""
        if not PLAYWRIGHT_AVAILABLE:
            raise RuntimeError("Playwright is not installed")

        playwright = await async_playwright().start()
        browser = None
        context = None
        page = None
        try:
            if self.config.browser_ws_endpoint:
                browser = await playwright.chromium.connect_over_cdp(
                    self.config.browser_ws_endpoint,
                    timeout=self.config.render_timeout_ms,
                )
            else:
                browser = await playwright.chromium.launch(headless=True, args=LAUNCH_ARGS)

            context = await browser.new_context(
                user_agent=user_agent,
                viewport={"width": 1280, "height": 900},
                locale="en-US",
                extra_http_headers={"Accept-Language": "en-US,en;q=0.9"},
            )
            page = await context.new_page()
            if stealth_async:
                await stealth_async(page)
            page.set_default_timeout(self.config.render_timeout_ms)

            yield page
        finally:
            for resource in (page, context, browser):
                if resource is None:
                    continue
                try:
                    await resource.close()
                except Exception as e:
                    self.logger.warning(f"Error closing Playwright resource: {e}")
            await playwright.stop()


class RenderedStrategy(BaseStrategy):
    """Shared navigation logic for strategies that need a live page."""

    def __init__(self, name: str, renderer: PlaywrightRenderer):
        super().__init__(name)
        self.renderer = renderer
        # Navigation has its own ceiling; leave room for browser start-up.
        self.timeout_seconds = renderer.config.render_timeout_seconds + 10

    async def navigate(self, page: Any, url: str) -> None:
        """Load ``url`` and give the network a bounded chance to go quiet."""
        try:
            await page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self.renderer.config.render_timeout_ms,
            )
        except PlaywrightTimeout as e:
            raise TransientFetchError(f"Navigation timeout for {url}", url=url) from e

        try:
            await page.wait_for_load_state("networkidle", timeout=SETTLE_TIMEOUT_MS)
        except PlaywrightTimeout:
            # Pages that keep polling never go idle; continue with what loaded.
            pass


class InstagramRenderedStrategy(RenderedStrategy):
    """Watch the embed page's network traffic and read its live DOM."""

    def __init__(self, renderer: PlaywrightRenderer):
        super().__init__("instagram_rendered", renderer)

    async def run(self, request: ExtractionRequest) -> StrategyOutcome:
        start_time = time.time()
        embed_url = instagram_embed_url(request.identifier)

        async with self.renderer.open_page(MOBILE_USER_AGENT) as page:
            with NetworkCapture(page, is_instagram_media_url) as capture:
                self.logger.info(f"Rendering Instagram embed page: {embed_url}")
                await self.navigate(page, embed_url)
                captured = capture.drain()

            dom = await page.evaluate(
                MEDIA_DOM_QUERY,
                {"cdnFragments": list(INSTAGRAM_CDN_FRAGMENTS), "minWidth": MIN_IMAGE_WIDTH},
            )

        dom = dom or {}
        entries = [
            MediaEntry(kind=MediaKind.VIDEO, source_url=url, quality="HD")
            for url in captured + list(dom.get("videos") or [])
            if _playable(url)
        ]
        if not entries:
            entries = [
                MediaEntry(kind=MediaKind.IMAGE, source_url=url, quality="HD")
                for url in dom.get("images") or []
                if _playable(url)
            ]

        self.logger.info(
            "Instagram render finished",
            extra={"captured_responses": len(captured), "entries": len(entries)},
        )
        return self.outcome(entries, start_time)


class YouTubeRenderedStrategy(RenderedStrategy):
    """Read ``ytInitialPlayerResponse`` straight from the page's global state."""

    def __init__(self, renderer: PlaywrightRenderer):
        super().__init__("youtube_rendered", renderer)

    async def run(self, request: ExtractionRequest) -> StrategyOutcome:
        start_time = time.time()
        watch_url = youtube_watch_url(request.identifier)

        async with self.renderer.open_page(DESKTOP_USER_AGENT) as page:
            await self.navigate(page, watch_url)
            player_response: Optional[Dict[str, Any]] = await page.evaluate(
                PLAYER_RESPONSE_QUERY
            )

        if not player_response:
            raise ParseFailureError("ytInitialPlayerResponse missing from rendered page")

        return self.outcome(entries_from_player_response(player_response), start_time)


class FacebookRenderedStrategy(RenderedStrategy):
    """Scan the rendered post for video fields, live video tags and JSON-LD."""

    def __init__(self, renderer: PlaywrightRenderer):
        super().__init__("facebook_rendered", renderer)

    async def run(self, request: ExtractionRequest) -> StrategyOutcome:
        start_time = time.time()

        async with self.renderer.open_page(DESKTOP_USER_AGENT) as page:
            await self.navigate(page, request.input_url)
            html = await page.content()
            dom = await page.evaluate(
                MEDIA_DOM_QUERY, {"cdnFragments": ["fbcdn"], "minWidth": MIN_IMAGE_WIDTH}
            )

        entries: List[MediaEntry] = match_facebook_rules(html)
        live_sources = list((dom or {}).get("videos") or []) + json_ld_content_urls(html)
        entries.extend(
            MediaEntry(kind=MediaKind.VIDEO, source_url=url, quality="SD")
            for url in live_sources
            if _playable(url)
        )
        return self.outcome(entries, start_time)
