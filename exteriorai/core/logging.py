"""
Structured logging for the API.

structlog renders both its own events and plain ``logging.getLogger`` records
through one formatter, so the request and project ids bound by
RequestLoggingMiddleware appear on every line a request produces, including
lines from the Gemini, ImgBB, ElevenLabs and Cloudinary clients.

Usage:
    from exteriorai.core.logging import get_logger
    logger = get_logger(__name__)
    logger.info("transformation_attached", transformation_id=record_id)
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

import structlog
from structlog.types import Processor

from exteriorai.core.config import settings

# Client libraries behind the integrations; their INFO output is per-request chatter
NOISY_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "aiohttp.access": logging.WARNING,
    "aiohttp.client": logging.WARNING,
    "google_genai": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "urllib3": logging.WARNING,
    "cloudinary": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
}

LOG_DIR = Path("logs")
MAX_LOG_BYTES = 10 * 1024 * 1024


def _shared_processors() -> List[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]


def build_formatter(log_format: str) -> structlog.stdlib.ProcessorFormatter:
    """Formatter turning any LogRecord into a JSON or console line"""
    if log_format == "json":
        renderers: List[Processor] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderers = [
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty(), exception_formatter=structlog.dev.plain_traceback)
        ]

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
    )


def setup_logging(log_format: Optional[str] = None, log_level: Optional[str] = None) -> None:
    """Configure structlog and the root logger. Safe to call more than once."""
    log_format = log_format or settings.log_format
    log_level = log_level or settings.log_level
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(build_formatter(log_format))
    root_logger.addHandler(console_handler)

    if settings.environment == "production":
        # Files are always JSON so they can be shipped as-is
        LOG_DIR.mkdir(exist_ok=True)
        file_handler = RotatingFileHandler(LOG_DIR / "exteriorai.log", maxBytes=MAX_LOG_BYTES, backupCount=5)
        file_handler.setFormatter(build_formatter("json"))
        root_logger.addHandler(file_handler)

        error_handler = RotatingFileHandler(LOG_DIR / "exteriorai_errors.log", maxBytes=MAX_LOG_BYTES, backupCount=5)
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(build_formatter("json"))
        root_logger.addHandler(error_handler)

    for name, level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    get_logger(__name__).info(
        "logging_configured", log_level=log_level, log_format=log_format, environment=settings.environment
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    return structlog.stdlib.get_logger(name)
