"""Centralized Logfire metric instruments.

Creating instruments once here avoids duplicate "instrument already created"
warnings that occur when instruments are instantiated across multiple modules.
Import and use these instruments wherever metrics are recorded.
"""

from __future__ import annotations

import logfire

# Request-level metrics
extractions_total = logfire.metric_counter("extractions_total")
extraction_errors = logfire.metric_counter("extraction_errors")
media_entries_found = logfire.metric_counter("media_entries_found")
empty_extractions = logfire.metric_counter("empty_extractions")

extraction_time_ms = logfire.metric_histogram("extraction_time_ms", unit="ms")

# StrategyChain metrics
strategy_success = logfire.metric_counter("strategy_success")
strategy_failure = logfire.metric_counter("strategy_failure")
strategy_exception = logfire.metric_counter("strategy_exception")
strategy_response_time_ms = logfire.metric_histogram(
    "strategy_response_time_ms", unit="ms"
)
all_strategies_failed = logfire.metric_counter("all_strategies_failed")
