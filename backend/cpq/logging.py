"""Logging configuration using structlog.

Every log line, including those from the standard library loggers of
uvicorn, httpx and dramatiq, goes through the same processor chain and is
rendered either as colored console output or as JSON (``LOG_FORMAT``).

Request handlers and tasks bind their identifiers once with
``bind_log_context``; the values are merged into every line logged
afterwards in the same context, so allocator, store and board log lines
carry the tenant, board session and request they belong to:

    bind_log_context(tenant_id=tenant_id)
    logger.info("Allocated quote number", number=number)
    # ... tenant_id=acme request_id=01J... number=COT-0042
"""

import logging
import sys
from typing import Any

import structlog
from structlog.typing import Processor

from cpq.config import settings

# Third-party loggers and the level below which they are dropped
QUIET_LOGGERS = {
    "httpx": logging.INFO,
    "httpcore": logging.WARNING,
    "asyncio": logging.INFO,
    "dramatiq": logging.INFO,
    "uvicorn.access": logging.WARNING,
    # SQLAlchemy logs every statement at INFO when echo=True
    "sqlalchemy.engine": logging.WARNING,
    "sqlalchemy.pool": logging.WARNING,
}


def bind_log_context(**values: Any) -> None:
    """Attach values to every subsequent log line in the current context."""
    structlog.contextvars.bind_contextvars(**values)


def clear_log_context() -> None:
    structlog.contextvars.clear_contextvars()


def _renderer(log_format: str) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback)


def configure_logging(*, log_format: str | None = None, level: str | None = None) -> None:
    """Configure structlog and route stdlib logging through it.

    Call this early in application startup (main.py and tasks/__init__.py).
    """
    log_format = log_format or settings.log_format
    level = level or settings.log_level

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso" if log_format == "json" else "%Y-%m-%d %H:%M:%S", utc=False),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if log_format == "json":
        # Console output renders tracebacks itself; JSON needs them as a field
        shared_processors.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, _renderer(log_format)],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)


# Allow re-import without side effects
_configured = False


def setup_logging() -> None:
    """Setup logging once. Safe to call multiple times."""
    global _configured
    if not _configured:
        configure_logging()
        _configured = True
