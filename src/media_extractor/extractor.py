"""Extraction orchestrator: the single entry point into the pipeline."""

import time
from typing import Any, Dict, List, Optional

import httpx
import logfire
from aws_lambda_powertools import Logger

from ..observability import metrics
from .config import ExtractorConfig
from .exceptions import InvalidInputError, UnsupportedPlatformError
from .http_client import create_http_client
from .models import ExtractionRequest, ExtractionResult, Platform
from .strategies import (
    BaseStrategy,
    FacebookPageStrategy,
    FacebookRenderedStrategy,
    InstagramEmbedStrategy,
    InstagramRenderedStrategy,
    PlaywrightRenderer,
    RelayStrategy,
    StrategyChain,
    YouTubeRenderedStrategy,
    YouTubeWatchPageStrategy,
    build_relays,
)
from .url_utils import classify, extract_identifier

logger = Logger()

SUPPORTED_PLATFORMS = (Platform.INSTAGRAM, Platform.YOUTUBE, Platform.FACEBOOK)


class MediaExtractor:
    """Classifies a post URL and runs its platform's strategy chain.

    Each call to :meth:`extract` is independent. The only thing shared
    between calls is the pooled HTTP client; browser pages are opened per
    call by the rendered strategies.
    """

    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        renderer: Optional[PlaywrightRenderer] = None,
    ):
        self.logger = logger
        self.config = config or ExtractorConfig.from_env()
        self._owns_http_client = http_client is None
        self.http_client = http_client or create_http_client(self.config)
        self.renderer = renderer or PlaywrightRenderer(self.config)

    def build_chain(self, platform: Platform) -> StrategyChain:
        """Strategies for ``platform`` in fallback order.

        Relay and rendered strategies are left out when their collaborator
        (relay configuration, a browser) is not available.
        """
        strategies: List[BaseStrategy] = []
        rendering = self.renderer.available

        if platform is Platform.INSTAGRAM:
            strategies.append(InstagramEmbedStrategy(self.http_client))
            relays = build_relays(self.config, self.http_client)
            if relays:
                strategies.append(
                    RelayStrategy(
                        relays, fetch_timeout_seconds=self.config.fetch_timeout_seconds
                    )
                )
            if rendering:
                strategies.append(InstagramRenderedStrategy(self.renderer))
        elif platform is Platform.YOUTUBE:
            strategies.append(YouTubeWatchPageStrategy(self.http_client))
            if rendering:
                strategies.append(YouTubeRenderedStrategy(self.renderer))
        elif platform is Platform.FACEBOOK:
            strategies.append(FacebookPageStrategy(self.http_client))
            if rendering:
                strategies.append(FacebookRenderedStrategy(self.renderer))

        return StrategyChain(strategies)

    async def extract(self, url: Any) -> ExtractionResult:
        """
        Extract direct media URLs from a post URL.

        Args:
            url: Post URL on a supported platform

        Returns:
            Normalized entries in discovery order; empty when nothing was
            found, which is a valid outcome rather than an error

        Raises:
            InvalidInputError: If ``url`` is missing or blank
            UnsupportedPlatformError: If the URL is on no supported platform
        """
        if not isinstance(url, str) or not url.strip():
            raise InvalidInputError("URL is required")

        url = url.strip()
        platform = classify(url)
        if platform is Platform.UNSUPPORTED:
            self.logger.info(f"Unsupported platform for URL: {url}")
            raise UnsupportedPlatformError(url)

        start_time = time.time()
        metrics.extractions_total.add(1, {"platform": platform.value})

        identifier = extract_identifier(url, platform)
        if not identifier:
            # Terminal: without a shortcode/video id there is nothing to fetch.
            self.logger.warning(
                f"No post identifier in {platform.value} URL: {url}"
            )
            metrics.empty_extractions.add(1, {"platform": platform.value})
            return []

        request = ExtractionRequest(input_url=url, platform=platform, identifier=identifier)

        with logfire.span("extract_media", url=url, platform=platform.value):
            # The chain already de-duplicates; URLs were unescaped at capture.
            result = await self.build_chain(platform).run(request)

        elapsed_ms = int((time.time() - start_time) * 1000)

        metrics.extraction_time_ms.record(elapsed_ms, {"platform": platform.value})
        if result:
            metrics.media_entries_found.add(len(result), {"platform": platform.value})
        else:
            metrics.empty_extractions.add(1, {"platform": platform.value})

        self.logger.info(
            "Extraction completed",
            extra={
                "url": url,
                "platform": platform.value,
                "entries": len(result),
                "videos": sum(1 for entry in result if entry.is_video),
                "elapsed_ms": elapsed_ms,
            },
        )
        return result

    def health_check(self) -> Dict[str, str]:
        """Static readiness signal."""
        return {"status": "ok"}

    def get_strategy_info(self) -> Dict[str, Any]:
        """Describe the fallback order configured for each platform."""
        return {
            platform.value: self.build_chain(platform).get_info()
            for platform in SUPPORTED_PLATFORMS
        }

    async def aclose(self) -> None:
        """Close the HTTP client if this extractor created it."""
        if self._owns_http_client:
            await self.http_client.aclose()

    async def __aenter__(self) -> "MediaExtractor":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
