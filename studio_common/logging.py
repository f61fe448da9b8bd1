"""Structured logging setup using structlog."""

from __future__ import annotations

import logging
import sys

import structlog

# boto3/botocore are chatty at DEBUG; keep them at WARNING unless asked.
_NOISY_LOGGERS = ("boto3", "botocore", "urllib3", "s3transfer", "httpx", "httpcore")


def setup_logging(*, json: bool = True, level: str = "INFO", quiet_aws: bool = True) -> None:
    """Configure structlog for a deploy run or a Lambda invocation.

    Parameters
    ----------
    json:
        If *True* (the default, suitable for CI and Lambda), output JSON
        lines.  If *False*, use a human-friendly console renderer.
    level:
        Root log level name (e.g. ``"DEBUG"``, ``"INFO"``).
    quiet_aws:
        Pin the AWS SDK and HTTP client loggers to ``WARNING``.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper())

    if quiet_aws:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
