"""Tests for ordered fallback in StrategyChain."""

import asyncio
import time

import httpx
import pytest

from src.media_extractor.exceptions import ParseFailureError, TransientFetchError
from src.media_extractor.models import ExtractionRequest, MediaEntry, MediaKind, Platform
from src.media_extractor.strategies import (
    BaseStrategy,
    InstagramEmbedStrategy,
    RelayClient,
    RelayStrategy,
    StrategyChain,
)

REQUEST = ExtractionRequest(
    input_url="https://www.instagram.com/p/ABC123/",
    platform=Platform.INSTAGRAM,
    identifier="ABC123",
)

VIDEO = MediaEntry(kind=MediaKind.VIDEO, source_url="https://cdn.example/v.mp4", quality="HD")
IMAGE = MediaEntry(kind=MediaKind.IMAGE, source_url="https://cdn.example/i.jpg", quality="HD")


class ScriptedStrategy(BaseStrategy):
    """Strategy double that returns canned entries, raises, or stalls."""

    def __init__(self, name, entries=None, error=None, delay=0.0):
        super().__init__(name)
        self.entries = entries or []
        self.error = error
        self.delay = delay
        self.calls = 0

    async def run(self, request):
        self.calls += 1
        start_time = time.time()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.outcome(list(self.entries), start_time)


class CountingRelay(RelayClient):
    def __init__(self):
        super().__init__("counting", http_client=None)
        self.calls = 0

    async def fetch(self, post_url):
        self.calls += 1
        return [VIDEO]


class TestStrategyChain:
    """Test suite for StrategyChain."""

    @pytest.mark.asyncio
    async def test_video_from_first_strategy_skips_relay(self):
        """A relay is never contacted once the embed page yielded a video."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text='{"video_url":"https://cdn.example/embed.mp4"}')

        relay = CountingRelay()
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            chain = StrategyChain([InstagramEmbedStrategy(client), RelayStrategy([relay])])
            result = await chain.run(REQUEST)

        assert [entry.source_url for entry in result] == ["https://cdn.example/embed.mp4"]
        assert relay.calls == 0

    @pytest.mark.asyncio
    async def test_images_accumulate_until_video(self):
        first = ScriptedStrategy("images", entries=[IMAGE])
        second = ScriptedStrategy("video", entries=[VIDEO])
        third = ScriptedStrategy("never")

        result = await StrategyChain([first, second, third]).run(REQUEST)

        assert result == [IMAGE, VIDEO]
        assert third.calls == 0

    @pytest.mark.asyncio
    async def test_duplicates_across_strategies_dropped(self):
        repeated = MediaEntry(kind=MediaKind.IMAGE, source_url=IMAGE.source_url, quality="SD")
        first = ScriptedStrategy("first", entries=[IMAGE])
        second = ScriptedStrategy("second", entries=[repeated])

        result = await StrategyChain([first, second]).run(REQUEST)

        assert result == [IMAGE]
        assert second.calls == 1

    @pytest.mark.asyncio
    async def test_captured_urls_are_not_decoded_again(self):
        """A URL whose real query holds a literal &amp; comes out unchanged."""
        literal = MediaEntry(
            kind=MediaKind.VIDEO, source_url="https://cdn.example/v.mp4?tag=a&amp;b", quality="HD"
        )

        result = await StrategyChain([ScriptedStrategy("only", entries=[literal])]).run(REQUEST)

        assert [entry.source_url for entry in result] == ["https://cdn.example/v.mp4?tag=a&amp;b"]

    @pytest.mark.asyncio
    async def test_exceptions_are_contained(self):
        transient = ScriptedStrategy("transient", error=TransientFetchError("HTTP 503"))
        parse = ScriptedStrategy("parse", error=ParseFailureError("bad markup"))
        crash = ScriptedStrategy("crash", error=RuntimeError("boom"))
        working = ScriptedStrategy("working", entries=[VIDEO])

        result = await StrategyChain([transient, parse, crash, working]).run(REQUEST)

        assert result == [VIDEO]
        assert [s.calls for s in (transient, parse, crash, working)] == [1, 1, 1, 1]

    @pytest.mark.asyncio
    async def test_slow_strategy_times_out(self):
        slow = ScriptedStrategy("slow", entries=[VIDEO], delay=1.0)
        slow.timeout_seconds = 0.01
        fallback = ScriptedStrategy("fallback", entries=[IMAGE])

        result = await StrategyChain([slow, fallback]).run(REQUEST)

        assert result == [IMAGE]

    @pytest.mark.asyncio
    async def test_all_strategies_fail_returns_empty(self):
        strategies = [
            ScriptedStrategy("empty"),
            ScriptedStrategy("broken", error=TransientFetchError("refused")),
        ]

        assert await StrategyChain(strategies).run(REQUEST) == []

    @pytest.mark.asyncio
    async def test_empty_chain(self):
        assert await StrategyChain([]).run(REQUEST) == []

    def test_get_info(self):
        chain = StrategyChain([ScriptedStrategy("a"), ScriptedStrategy("b")])

        info = chain.get_info()

        assert info["total_strategies"] == 2
        assert info["strategy_names"] == ["a", "b"]
        assert info["fallback_order"] == ["1. a", "2. b"]
