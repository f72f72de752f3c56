"""structlog setup for hosts that embed the runner.

The library itself only obtains loggers through :func:`get_logger`; it never
configures logging. A CI host calls :func:`configure_logging` (or
:func:`configure_from_runner_config`) once at start-up.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, TYPE_CHECKING, cast

import structlog

if TYPE_CHECKING:
    from codebuild_runner.core.config import RunnerConfig

# AWS SDK loggers that flood DEBUG output with request dumps.
SDK_LOGGERS = ("botocore", "boto3", "s3transfer", "urllib3")


def configure_logging(level: str = "INFO", json: bool = True, *, stream: IO[str] | None = None) -> None:
    """Route structlog and stdlib logging through one formatter.

    Args:
        level: Standard logging level name; unknown names fall back to INFO.
        json: Render entries with JSONRenderer when True, ConsoleRenderer otherwise.
        stream: Destination of rendered entries; defaults to stderr so the
            host's console output stays clean.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)
    for name in SDK_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def configure_from_runner_config(config: RunnerConfig) -> None:
    """Apply ``log_level`` and ``log_json`` from a :class:`RunnerConfig`."""
    configure_logging(config.log_level, json=config.log_json)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Logger for a ``codebuild_runner`` module; pass ``__name__``."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
