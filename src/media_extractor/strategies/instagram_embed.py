"""Instagram strategy reading media URLs from the post's embed page."""

import time

import httpx

from ..http_client import fetch_text
from ..models import ExtractionRequest, StrategyOutcome
from ..signals import INSTAGRAM_IMAGE_RULES, INSTAGRAM_VIDEO_RULES, match_rules
from ..url_utils import instagram_embed_url
from .base import BaseStrategy


class InstagramEmbedStrategy(BaseStrategy):
    """Fetch ``/p/<shortcode>/embed/captioned/`` and scan its markup.

    Video patterns are tried first; image patterns only when no video
    turned up, so a reel yields its stream rather than its poster.
    """

    def __init__(self, http_client: httpx.AsyncClient):
        super().__init__("instagram_embed")
        self.http_client = http_client

    async def run(self, request: ExtractionRequest) -> StrategyOutcome:
        start_time = time.time()
        embed_url = instagram_embed_url(request.identifier)

        self.logger.info(f"Fetching Instagram embed page: {embed_url}")
        html = await fetch_text(self.http_client, embed_url)
        self.logger.info("Embed page fetched", extra={"html_length": len(html)})

        entries = match_rules(html, INSTAGRAM_VIDEO_RULES)
        if not entries:
            entries = match_rules(html, INSTAGRAM_IMAGE_RULES)

        return self.outcome(entries, start_time)
