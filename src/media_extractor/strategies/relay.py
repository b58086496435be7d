"""Third-party relay services that scrape Instagram on our behalf."""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

import httpx

from ..config import DEFAULT_FETCH_TIMEOUT_SECONDS, ExtractorConfig
from ..exceptions import MediaExtractionError, ParseFailureError, TransientFetchError
from ..http_client import API_HEADERS, DESKTOP_USER_AGENT, send
from ..models import ExtractionRequest, MediaEntry, StrategyOutcome
from ..signals import SNAPSAVE_RULES, entries_from_relay_payload, match_rules
from .base import BaseStrategy

SNAPSAVE_ENDPOINT = "https://snapsave.app/action.php"

# Headroom on top of the per-relay budgets for the strategy's own work.
RELAY_TIMEOUT_MARGIN_SECONDS = 5.0


class RelayClient(ABC):
    """One relay endpoint."""

    def __init__(self, name: str, http_client: httpx.AsyncClient):
        self.name = name
        self.http_client = http_client

    @abstractmethod
    async def fetch(self, post_url: str) -> List[MediaEntry]:
        """Ask the relay for the media behind ``post_url``."""
        pass


class JsonRelay(RelayClient):
    """Relay answering with JSON; the endpoint and key come from configuration.

    With ``RELAY_API_HOST`` set the key is sent RapidAPI style, otherwise as
    a bearer token.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        endpoint: str,
        api_key: str,
        api_host: Optional[str] = None,
        method: str = "GET",
    ):
        super().__init__("json_relay", http_client)
        self.endpoint = endpoint
        self.api_key = api_key
        self.api_host = api_host
        self.method = method.upper()

    def _headers(self) -> Dict[str, str]:
        headers = dict(API_HEADERS)
        if self.api_host:
            headers["X-RapidAPI-Key"] = self.api_key
            headers["X-RapidAPI-Host"] = self.api_host
        else:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def fetch(self, post_url: str) -> List[MediaEntry]:
        if self.method == "POST":
            response = await send(
                self.http_client,
                "POST",
                self.endpoint,
                headers=self._headers(),
                json={"url": post_url},
            )
        else:
            response = await send(
                self.http_client,
                "GET",
                self.endpoint,
                headers=self._headers(),
                params={"url": post_url},
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ParseFailureError(f"{self.name} returned invalid JSON: {e}") from e

        return entries_from_relay_payload(payload)


class SnapSaveRelay(RelayClient):
    """SnapSave's form endpoint; the answer is markup with download links."""

    def __init__(self, http_client: httpx.AsyncClient, endpoint: str = SNAPSAVE_ENDPOINT):
        super().__init__("snapsave", http_client)
        self.endpoint = endpoint

    async def fetch(self, post_url: str) -> List[MediaEntry]:
        response = await send(
            self.http_client,
            "POST",
            self.endpoint,
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "User-Agent": DESKTOP_USER_AGENT,
                "Origin": "https://snapsave.app",
                "Referer": "https://snapsave.app/",
            },
            data={"url": post_url},
        )
        return match_rules(response.text, SNAPSAVE_RULES)


def build_relays(
    config: ExtractorConfig, http_client: httpx.AsyncClient
) -> List[RelayClient]:
    """Relays in priority order; unconfigured ones are left out."""
    relays: List[RelayClient] = []
    if config.relay_configured:
        relays.append(
            JsonRelay(
                http_client,
                endpoint=config.relay_api_url,
                api_key=config.relay_api_key,
                api_host=config.relay_api_host,
                method=config.relay_api_method,
            )
        )
    if config.snapsave_enabled:
        relays.append(SnapSaveRelay(http_client))
    return relays


class RelayStrategy(BaseStrategy):
    """Try each relay in order; the first one returning media wins.

    Every relay gets its own ``fetch_timeout_seconds`` budget, and the
    strategy budget covers all of them, so a hanging relay cannot starve
    the ones after it.
    """

    def __init__(
        self,
        relays: Sequence[RelayClient],
        fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
    ):
        super().__init__("relay")
        self.relays = list(relays)
        self.fetch_timeout_seconds = fetch_timeout_seconds
        self.timeout_seconds = (
            len(self.relays) * fetch_timeout_seconds + RELAY_TIMEOUT_MARGIN_SECONDS
        )

    async def _fetch(self, relay: RelayClient, post_url: str) -> List[MediaEntry]:
        try:
            return await asyncio.wait_for(
                relay.fetch(post_url), timeout=self.fetch_timeout_seconds
            )
        except asyncio.TimeoutError as e:
            raise TransientFetchError(
                f"timed out after {self.fetch_timeout_seconds}s"
            ) from e

    async def run(self, request: ExtractionRequest) -> StrategyOutcome:
        start_time = time.time()
        errors = []

        for relay in self.relays:
            try:
                entries = await self._fetch(relay, request.input_url)
            except MediaExtractionError as e:
                errors.append(f"{relay.name}: {e}")
                self.logger.warning(f"Relay {relay.name} failed: {e}")
                continue

            if entries:
                self.logger.info(
                    f"Relay {relay.name} returned {len(entries)} entries",
                    extra={"relay": relay.name},
                )
                return self.outcome(entries, start_time)

            self.logger.info(f"Relay {relay.name} returned no media")

        return self.outcome([], start_time, error="; ".join(errors) or None)
