"""Runtime configuration for the extraction pipeline, read from the environment."""

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import boto3
from aws_lambda_powertools import Logger

logger = Logger()

DEFAULT_FETCH_TIMEOUT_SECONDS = 15.0
DEFAULT_RENDER_TIMEOUT_MS = 25000

# Default AWS region to use when creating clients (helps unit tests)
DEFAULT_AWS_REGION = os.environ.get("AWS_DEFAULT_REGION", "us-east-2")


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, default))
    except (TypeError, ValueError):
        logger.warning(f"Ignoring invalid {name}; using {default}")
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        logger.warning(f"Ignoring invalid {name}; using {default}")
        return default


def get_relay_secret(secret_name: str) -> Dict[str, Any]:
    """Read relay credentials from AWS Secrets Manager."""
    secrets_client = boto3.client("secretsmanager", region_name=DEFAULT_AWS_REGION)
    response = secrets_client.get_secret_value(SecretId=secret_name)
    return json.loads(response["SecretString"])


@dataclass
class ExtractorConfig:
    """Settings for fetch timeouts, relays and the rendering backend.

    Relay and rendering strategies are only built when their settings are
    present; nothing here carries a default credential.
    """

    fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS
    render_timeout_ms: int = DEFAULT_RENDER_TIMEOUT_MS
    rendering_enabled: bool = False
    browser_ws_endpoint: Optional[str] = None
    snapsave_enabled: bool = True
    relay_api_url: Optional[str] = None
    relay_api_key: Optional[str] = None
    relay_api_host: Optional[str] = None
    relay_api_method: str = "GET"
    proxy_url: Optional[str] = None

    @property
    def relay_configured(self) -> bool:
        return bool(self.relay_api_url and self.relay_api_key)

    @property
    def render_timeout_seconds(self) -> float:
        return self.render_timeout_ms / 1000

    @classmethod
    def from_env(cls) -> "ExtractorConfig":
        """Build configuration from environment variables.

        When ``RELAY_SECRET_NAME`` is set and ``RELAY_API_KEY`` is not, the
        key is looked up in Secrets Manager. A failed lookup leaves the
        relay unconfigured.
        """
        relay_api_key = os.environ.get("RELAY_API_KEY") or None
        secret_name = os.environ.get("RELAY_SECRET_NAME")
        if secret_name and not relay_api_key:
            try:
                relay_api_key = get_relay_secret(secret_name).get("api_key") or None
            except Exception as e:
                logger.warning(
                    f"Relay secret {secret_name} unavailable, JSON relay disabled: {e}"
                )

        config = cls(
            fetch_timeout_seconds=_env_float(
                "FETCH_TIMEOUT_SECONDS", DEFAULT_FETCH_TIMEOUT_SECONDS
            ),
            render_timeout_ms=_env_int("RENDER_TIMEOUT_MS", DEFAULT_RENDER_TIMEOUT_MS),
            rendering_enabled=_env_bool("RENDERING_ENABLED", False),
            browser_ws_endpoint=os.environ.get("BROWSER_WS_ENDPOINT") or None,
            snapsave_enabled=_env_bool("SNAPSAVE_ENABLED", True),
            relay_api_url=os.environ.get("RELAY_API_URL") or None,
            relay_api_key=relay_api_key,
            relay_api_host=os.environ.get("RELAY_API_HOST") or None,
            relay_api_method=os.environ.get("RELAY_API_METHOD", "GET").upper(),
            proxy_url=os.environ.get("PROXY_URL") or None,
        )

        logger.info(
            "Extractor configuration loaded",
            extra={
                "fetch_timeout_seconds": config.fetch_timeout_seconds,
                "render_timeout_ms": config.render_timeout_ms,
                "rendering_enabled": config.rendering_enabled,
                "remote_browser": bool(config.browser_ws_endpoint),
                "snapsave_enabled": config.snapsave_enabled,
                "relay_configured": config.relay_configured,
            },
        )
        return config
