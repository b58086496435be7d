"""API Gateway Lambda handler for the media download API.

Routes:
- POST /download  {"url": "..."} -> direct media URLs for the post
- GET  /health                   -> static readiness signal

Uses Logfire for unified observability - logs appear in both CloudWatch
(via console output) and Logfire platform (via OTLP).
"""

import asyncio
import base64
import json
from typing import Any, Dict, Optional, Tuple

import logfire
from aws_lambda_powertools import Logger
from aws_lambda_powertools.utilities.typing import LambdaContext
from opentelemetry import context as otel_context

from ..media_extractor.config import ExtractorConfig
from ..media_extractor.exceptions import InvalidInputError, UnsupportedPlatformError
from ..media_extractor.extractor import MediaExtractor
from ..media_extractor.normalizer import assign_filenames
from ..observability import metrics
from ..observability.logging import setup_logfire
from ..observability.trace_context import extract_context_from_headers

setup_logfire(enable_console_output=True)

logger = Logger()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type,traceparent,tracestate,baggage",
}

# Global config for warm starts
_config: Optional[ExtractorConfig] = None


def get_config() -> ExtractorConfig:
    """Get or load the extractor configuration."""
    global _config
    if _config is None:
        _config = ExtractorConfig.from_env()
    return _config


def _response(status_code: int, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    response: Dict[str, Any] = {"statusCode": status_code, "headers": dict(CORS_HEADERS)}
    if body is not None:
        response["headers"]["Content-Type"] = "application/json"
        response["body"] = json.dumps(body)
    else:
        response["body"] = ""
    return response


def _route(event: Dict[str, Any]) -> Tuple[str, str]:
    """Method and path for REST (v1) and HTTP (v2) API Gateway payloads."""
    http_ctx = (event.get("requestContext") or {}).get("http") or {}
    method = event.get("httpMethod") or http_ctx.get("method") or ""
    path = event.get("path") or event.get("rawPath") or http_ctx.get("path") or ""
    return method.upper(), path.rstrip("/") or "/"


def _parse_url(event: Dict[str, Any]) -> Any:
    body_str = event.get("body") or ""
    if event.get("isBase64Encoded") and body_str:
        try:
            body_str = base64.b64decode(body_str).decode("utf-8")
        except (ValueError, UnicodeDecodeError):
            return None

    try:
        body = json.loads(body_str) if body_str else {}
    except json.JSONDecodeError:
        return None

    if not isinstance(body, dict):
        return None
    return body.get("url")


async def handle_download(event: Dict[str, Any]) -> Dict[str, Any]:
    """Run one extraction and map the outcome to an HTTP response."""
    url = _parse_url(event)

    try:
        async with MediaExtractor(config=get_config()) as extractor:
            entries = await extractor.extract(url)
    except InvalidInputError:
        return _response(400, {"error": "URL is required"})
    except UnsupportedPlatformError:
        return _response(400, {"error": "Unsupported platform"})
    except Exception as e:
        logger.exception(f"Extraction failed for {url}")
        metrics.extraction_errors.add(1, {"error_type": type(e).__name__})
        return _response(500, {"error": str(e) or "Internal server error"})

    return _response(200, {"success": True, "media": assign_filenames(entries)})


async def async_lambda_handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
    method, path = _route(event)

    if method == "OPTIONS":
        return _response(204)
    if method == "GET" and path == "/health":
        return _response(200, {"status": "ok"})
    if method == "POST" and path == "/download":
        return await handle_download(event)

    logger.info(f"No route for {method} {path}")
    return _response(404, {"error": "Not found"})


def lambda_handler(event: Dict[str, Any], context: LambdaContext) -> Dict[str, Any]:
    """Lambda entry point for the download API."""
    if not isinstance(event, dict):
        return _response(400, {"error": "Invalid request"})

    # Continue the caller's trace when W3C headers are present
    token = otel_context.attach(extract_context_from_headers(event))
    try:
        with logfire.span(
            "download_api.handle",
            request_id=getattr(context, "aws_request_id", None),
        ):
            return asyncio.run(async_lambda_handler(event, context))
    except Exception as e:
        logger.error(f"Lambda handler error: {str(e)}", exc_info=True)
        return _response(500, {"error": "Internal server error"})
    finally:
        otel_context.detach(token)
