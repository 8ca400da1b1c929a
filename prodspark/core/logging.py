"""
Logging configuration for the API.

structlog renders every record, including ones from plain `logging` loggers
(services, SQLAlchemy, uvicorn). Values bound with
`structlog.contextvars.bind_contextvars` are merged into each record, so a
line logged deep inside the product store still carries the request_id,
session_id and product_id of the request that caused it.

Usage:
    from prodspark.middleware.logging_middleware import get_logger
    logger = get_logger(__name__)

    logger.info("like_toggled", liked=True, likes_count=3)
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import structlog

from prodspark.core.config import settings

NOISY_LOGGERS = (
    "uvicorn.access",
    "uvicorn.error",
    "httpx",
    "httpcore",
    "sqlalchemy.engine",
    "asyncio",
)

# Applied to structlog events and foreign (stdlib) records alike
SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
]


def _formatter(json_output: bool) -> structlog.stdlib.ProcessorFormatter:
    if json_output:
        renderers = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback)]

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=SHARED_PROCESSORS,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
    )


def _file_handlers(log_dir: Path):
    log_dir.mkdir(parents=True, exist_ok=True)

    everything = RotatingFileHandler(log_dir / "prodspark.log", maxBytes=10 * 1024 * 1024, backupCount=5)
    everything.setLevel(logging.DEBUG)

    errors = RotatingFileHandler(log_dir / "prodspark_errors.log", maxBytes=10 * 1024 * 1024, backupCount=5)
    errors.setLevel(logging.ERROR)

    # Files are always JSON so they can be shipped as-is
    for handler in (everything, errors):
        handler.setFormatter(_formatter(json_output=True))
    return [everything, errors]


def setup_logging():
    """Configure structlog and route stdlib logging through it."""
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *SHARED_PROCESSORS,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(_formatter(json_output=settings.log_format == "json"))

    handlers = [console_handler]
    if settings.environment == "production":
        handlers.extend(_file_handlers(Path(settings.log_dir)))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = handlers

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.get_logger(__name__).info(
        "logging_configured",
        level=settings.log_level,
        format=settings.log_format,
        environment=settings.environment,
    )
