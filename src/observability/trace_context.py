from __future__ import annotations

from typing import Any, Dict

from opentelemetry.context import Context
from opentelemetry.propagate import extract

_TRACE_HEADERS = ("traceparent", "tracestate", "baggage")


def extract_context_from_headers(event: Any) -> Context:
    """Extract W3C trace context from an API Gateway proxy event.

    Header names are matched case-insensitively since API Gateway passes
    them through as the client sent them:
    - traceparent
    - tracestate
    - baggage (optional)
    """

    carrier: Dict[str, str] = {}

    try:
        if not isinstance(event, dict):
            return Context()

        headers = event.get("headers")
        if not isinstance(headers, dict):
            return Context()

        for key, value in headers.items():
            if not isinstance(key, str) or not isinstance(value, str):
                continue
            lowered = key.lower()
            if lowered in _TRACE_HEADERS and value:
                carrier[lowered] = value

    except Exception:
        return Context()

    # Important: pass a fresh base Context() to prevent accidentally inheriting
    # a previously active context when no trace keys exist in `carrier`.
    return extract(carrier, context=Context())
