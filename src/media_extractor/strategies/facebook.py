"""Facebook strategy scanning the post page for playable video fields."""

import time

import httpx

from ..http_client import fetch_text
from ..models import ExtractionRequest, MediaEntry, MediaKind, StrategyOutcome
from ..signals import json_ld_content_urls, match_facebook_rules
from .base import BaseStrategy


class FacebookPageStrategy(BaseStrategy):
    """Fetch the post URL and match ``playable_url``/``sd_src``/``hd_src`` fields.

    JSON-LD ``contentUrl`` values are appended after the pattern matches.
    """

    def __init__(self, http_client: httpx.AsyncClient):
        super().__init__("facebook_page")
        self.http_client = http_client

    async def run(self, request: ExtractionRequest) -> StrategyOutcome:
        start_time = time.time()

        self.logger.info(f"Fetching Facebook page: {request.input_url}")
        html = await fetch_text(self.http_client, request.input_url)

        entries = match_facebook_rules(html)
        entries.extend(
            MediaEntry(kind=MediaKind.VIDEO, source_url=url, quality="SD")
            for url in json_ld_content_urls(html)
        )
        return self.outcome(entries, start_time)
