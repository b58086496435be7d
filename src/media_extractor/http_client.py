"""Shared HTTP plumbing: browser-like headers and a bounded async client."""

from typing import Any, Dict, Optional

import httpx
from aws_lambda_powertools import Logger

from .config import ExtractorConfig
from .exceptions import TransientFetchError

logger = Logger()

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

MOBILE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) "
    "AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 "
    "Mobile/15E148 Safari/604.1"
)

# Platforms degrade or reject responses to requests that don't look like a
# browser navigation.
BROWSER_HEADERS = {
    "User-Agent": DESKTOP_USER_AGENT,
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",  # Exclude 'br' to avoid brotli
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
}

API_HEADERS = {
    "User-Agent": DESKTOP_USER_AGENT,
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "Sec-Fetch-Dest": "empty",
    "Sec-Fetch-Mode": "cors",
    "Sec-Fetch-Site": "cross-site",
}


def create_http_client(config: ExtractorConfig) -> httpx.AsyncClient:
    """Create the pooled client used by every non-rendered strategy."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.fetch_timeout_seconds),
        limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
        follow_redirects=True,
        proxy=config.proxy_url,
    )


async def send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    headers: Optional[Dict[str, str]] = None,
    **kwargs: Any,
) -> httpx.Response:
    """
    Send a request and insist on a 2xx answer.

    Args:
        client: Shared async client
        method: HTTP method
        url: Target URL
        headers: Request headers (browser headers by default)
        **kwargs: Passed through to ``httpx.AsyncClient.request``

    Returns:
        The successful response

    Raises:
        TransientFetchError: On timeout, transport failure or non-2xx status
    """
    try:
        response = await client.request(
            method, url, headers=headers or BROWSER_HEADERS, **kwargs
        )
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise TransientFetchError(
            f"HTTP {e.response.status_code} from {url}",
            url=url,
            status_code=e.response.status_code,
        ) from e
    except httpx.TimeoutException as e:
        raise TransientFetchError(f"Timeout fetching {url}: {e}", url=url) from e
    except httpx.HTTPError as e:
        raise TransientFetchError(f"HTTP error fetching {url}: {e}", url=url) from e

    logger.debug(
        "Fetched URL",
        extra={
            "url": url,
            "status": response.status_code,
            "size": len(response.content),
        },
    )
    return response


async def fetch_text(
    client: httpx.AsyncClient, url: str, headers: Optional[Dict[str, str]] = None
) -> str:
    """GET a page with browser headers and return its decoded body."""
    response = await send(client, "GET", url, headers=headers)
    return response.text
