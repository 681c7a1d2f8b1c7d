# ABOUTME: Structured logging configuration for the TTS gateway with request ID tracking
# ABOUTME: Provides JSON or console structlog output over the standard library logging tree

import logging
import sys
from contextlib import contextmanager
from typing import Optional

import structlog


def configure_logging(
    log_level: str = "info",
    log_file: Optional[str] = None,
    enable_json: bool = True
) -> None:
    """
    Configure structured logging for the TTS gateway.

    Args:
        log_level: Logging level (debug, info, warning, error, critical)
        log_file: Optional file path for log output (defaults to stdout)
        enable_json: Whether to use JSON formatting (default True)
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    # Clear any existing configuration
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()

    if log_file:
        handler = logging.FileHandler(log_file)
    else:
        handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.addHandler(handler)

    renderer = (
        structlog.processors.JSONRenderer()
        if enable_json
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@contextmanager
def request_id_context(request_id: str):
    """
    Bind a request ID to every structlog event emitted inside the block.

    Args:
        request_id: Unique identifier for the request
    """
    tokens = structlog.contextvars.bind_contextvars(request_id=request_id)
    try:
        yield
    finally:
        structlog.contextvars.reset_contextvars(**tokens)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a configured logger instance."""
    return structlog.get_logger(name)
