"""Ordered fallback across acquisition strategies for one platform."""

import asyncio
import time
from typing import Any, Dict, List, Sequence

import logfire
from aws_lambda_powertools import Logger

from ...observability import metrics
from ..exceptions import ParseFailureError, TransientFetchError
from ..models import ExtractionRequest, ExtractionResult
from ..normalizer import MediaCollector
from .base import BaseStrategy

logger = Logger()


class StrategyChain:
    """Runs strategies in priority order until one of them finds a video.

    Strategies are ordered cheapest first (static fetches before relays,
    relays before a full browser render). Images found along the way are
    kept, but a later strategy still runs while no video has been found.
    Any failure inside a strategy is contained; the chain moves on to the
    next one and never retries the same strategy.
    """

    def __init__(self, strategies: Sequence[BaseStrategy]):
        self.logger = logger
        self.strategies: List[BaseStrategy] = list(strategies)

    async def run(self, request: ExtractionRequest) -> ExtractionResult:
        """
        Execute the chain for one request.

        Args:
            request: Classified extraction request

        Returns:
            Entries from every strategy that ran, de-duplicated, in
            discovery order. Empty if every strategy came up short.
        """
        start_time = time.time()
        collector = MediaCollector()
        errors = []

        for i, strategy in enumerate(self.strategies, 1):
            self.logger.info(
                f"Attempting strategy {i}/{len(self.strategies)}: {strategy.name}",
                extra={"platform": request.platform.value, "url": request.input_url},
            )

            try:
                with logfire.span(f"strategy.{strategy.name}", url=request.input_url):
                    outcome = await asyncio.wait_for(
                        strategy.run(request), timeout=strategy.timeout_seconds
                    )
            except asyncio.TimeoutError:
                error_msg = (
                    f"{strategy.name} timed out after {strategy.timeout_seconds}s"
                )
                errors.append(error_msg)
                self.logger.warning(error_msg)
                metrics.strategy_failure.add(1, {"strategy": strategy.name})
                continue
            except (TransientFetchError, ParseFailureError) as e:
                error_msg = f"{strategy.name} failed: {e}"
                errors.append(error_msg)
                self.logger.warning(error_msg)
                metrics.strategy_failure.add(1, {"strategy": strategy.name})
                continue
            except Exception as e:
                error_msg = f"{strategy.name} exception: {e}"
                errors.append(error_msg)
                self.logger.exception(error_msg)
                metrics.strategy_exception.add(1, {"strategy": strategy.name})
                continue

            metrics.strategy_response_time_ms.record(
                outcome.response_time_ms, {"strategy": strategy.name}
            )

            added = collector.extend(outcome.entries)
            if added:
                metrics.strategy_success.add(1, {"strategy": strategy.name})
            else:
                errors.append(f"{strategy.name}: {outcome.error or 'no new media'}")
                metrics.strategy_failure.add(1, {"strategy": strategy.name})

            self.logger.info(
                f"Strategy {strategy.name} finished",
                extra={
                    "found": len(outcome.entries),
                    "added": len(added),
                    "response_time_ms": outcome.response_time_ms,
                },
            )

            if outcome.should_stop_chain or collector.has_video():
                break

        total_time = self.measure_time(start_time)
        if not len(collector):
            self.logger.warning(
                f"All {len(self.strategies)} strategies failed for {request.input_url}",
                extra={"errors": errors, "total_time_ms": total_time},
            )
            metrics.all_strategies_failed.add(1, {"platform": request.platform.value})
        else:
            self.logger.info(
                f"Chain collected {len(collector)} entries in {total_time}ms",
                extra={"fallback_errors": errors},
            )

        return collector.entries

    def measure_time(self, start_time: float) -> int:
        """Measure time elapsed since start_time in milliseconds."""
        return int((time.time() - start_time) * 1000)

    def get_info(self) -> Dict[str, Any]:
        """Describe the configured fallback order."""
        return {
            "total_strategies": len(self.strategies),
            "strategy_names": [strategy.name for strategy in self.strategies],
            "fallback_order": [
                f"{i + 1}. {strategy.name}" for i, strategy in enumerate(self.strategies)
            ],
        }
