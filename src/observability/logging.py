from __future__ import annotations

import logging
import os
from typing import Optional

import logfire


def _parse_log_level(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    level = value.strip().upper()
    mapping = {
        "CRITICAL": logging.CRITICAL,
        "ERROR": logging.ERROR,
        "WARNING": logging.WARNING,
        "WARN": logging.WARNING,
        "INFO": logging.INFO,
        "DEBUG": logging.DEBUG,
        "NOTSET": logging.NOTSET,
    }
    return mapping.get(level)


def setup_logfire(*, enable_console_output: bool = False) -> None:
    """Configure Logfire and bridge stdlib logging.

    - Configures Logfire with service name, environment and token.
    - Optionally enables console output formatting (useful for API Gateway Lambdas).
    - Bridges the stdlib root logger to Logfire via LogfireLoggingHandler.
    - Honors LOG_LEVEL if set; otherwise does not modify the root logger level.
    - Dials down noisy third-party loggers to WARNING.
    """

    console_opts = None
    if enable_console_output:
        console_opts = logfire.ConsoleOptions(
            colors="auto",
            include_timestamps=True,
            verbose=True,
        )

    logfire.configure(
        service_name=os.getenv("LOGFIRE_SERVICE_NAME", "media-extractor"),
        environment=os.getenv("LOGFIRE_ENV", os.getenv("ENV", "dev")),
        token=os.getenv("LOGFIRE_TOKEN"),
        send_to_logfire="if-token-present",
        distributed_tracing=True,
        console=console_opts if console_opts is not None else False,
    )

    root_logger = logging.getLogger()
    if not any(
        isinstance(h, logfire.LogfireLoggingHandler) for h in root_logger.handlers
    ):
        root_logger.addHandler(logfire.LogfireLoggingHandler())

    # Powertools loggers can be created at import time, before this runs.
    powertools_logger = logging.getLogger("aws_lambda_powertools")
    if not any(
        isinstance(h, logfire.LogfireLoggingHandler)
        for h in powertools_logger.handlers
    ):
        powertools_logger.addHandler(logfire.LogfireLoggingHandler())

    desired_level = _parse_log_level(os.getenv("LOG_LEVEL"))
    if desired_level is not None:
        logging.getLogger().setLevel(desired_level)

    # Reduce noise from common libraries unless explicitly overridden elsewhere
    for noisy in ("httpx", "httpcore", "botocore", "boto3", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
