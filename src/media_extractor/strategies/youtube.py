"""YouTube strategy reading the inline player response from the watch page."""

import time

import httpx

from ..http_client import fetch_text
from ..models import ExtractionRequest, StrategyOutcome
from ..signals import entries_from_player_response, find_player_response
from ..url_utils import youtube_watch_url
from .base import BaseStrategy


class YouTubeWatchPageStrategy(BaseStrategy):
    """Fetch the canonical watch page and decode ``ytInitialPlayerResponse``.

    Formats protected by a signature cipher are skipped; no deciphering is
    attempted.
    """

    def __init__(self, http_client: httpx.AsyncClient):
        super().__init__("youtube_watch_page")
        self.http_client = http_client

    async def run(self, request: ExtractionRequest) -> StrategyOutcome:
        start_time = time.time()
        watch_url = youtube_watch_url(request.identifier)

        self.logger.info(f"Fetching YouTube watch page: {watch_url}")
        html = await fetch_text(self.http_client, watch_url)

        player_response = find_player_response(html)
        entries = entries_from_player_response(player_response)
        return self.outcome(entries, start_time)
