"""Base strategy interface and common functionality."""

import time
from abc import ABC, abstractmethod
from typing import List, Optional

from aws_lambda_powertools import Logger

from ..models import ExtractionRequest, MediaEntry, StrategyOutcome

logger = Logger()

DEFAULT_STRATEGY_TIMEOUT_SECONDS = 20.0


class BaseStrategy(ABC):
    """Base class for media acquisition strategies.

    A strategy fetches one kind of signal (page markup, relay API, rendered
    page) and reports the entries it found. It may raise
    ``TransientFetchError`` or ``ParseFailureError``; the chain running it
    contains those and moves on.
    """

    timeout_seconds: float = DEFAULT_STRATEGY_TIMEOUT_SECONDS

    def __init__(self, name: str):
        self.name = name
        self.logger = logger

    @abstractmethod
    async def run(self, request: ExtractionRequest) -> StrategyOutcome:
        """Acquire media entries for the request."""
        pass

    def outcome(
        self,
        entries: List[MediaEntry],
        start_time: float,
        error: Optional[str] = None,
    ) -> StrategyOutcome:
        """Wrap entries in an outcome stamped with this strategy's name and timing.

        The chain should stop once a video has been found.
        """
        return StrategyOutcome(
            entries=entries,
            should_stop_chain=any(entry.is_video for entry in entries),
            method=self.name,
            error=error if error else (None if entries else "No media found"),
            response_time_ms=self.measure_time(start_time),
        )

    def measure_time(self, start_time: float) -> int:
        """Calculate elapsed time in milliseconds."""
        return int((time.time() - start_time) * 1000)
