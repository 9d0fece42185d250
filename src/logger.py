"""
src/logger.py
─────────────
Structured logging setup.

Colored console output in development, JSON lines everywhere else.

Usage:
    from src.logger import configure_logging, get_logger

    configure_logging(environment="production")
    logger = get_logger(__name__)
    logger.info("import_committed", new_parts=12)
"""
from __future__ import annotations

import logging
import sys

import structlog
from structlog.types import Processor


def configure_logging(
    environment: str = "development",
    log_level: str = "INFO",
    json_format: bool | None = None,
) -> None:
    """Configure structlog and route it through stdlib logging.

    Args:
        environment: Deployment environment (development, staging, production).
        log_level: Logging level name.
        json_format: Force JSON output. If None, JSON unless in development.
    """
    use_json = json_format if json_format is not None else (environment != "development")

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if use_json:
        processors.extend([
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ])
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # CLI output goes to stdout; keep logs on stderr
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper(), logging.INFO),
        force=True,
    )

    for noisy_logger in ("httpx", "httpcore", "openai"):
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger, typically `get_logger(__name__)`."""
    return structlog.stdlib.get_logger(name)
