"""
Structured logging setup using structlog.

Call sites log snake_case event names with key/value context:

    logger = get_logger(__name__)
    logger.info("stage_completed", stage="parse", processing_id=42)

The same processor chain renders either JSON (production, or
LOG_FORMAT=json) or a coloured console line (local development).
Standard-library logging (uvicorn, SQLAlchemy, httpx) is routed through
the same formatter so all output looks alike.
"""

import logging
import sys

import structlog

from sermonvault.core.config import settings


def setup_logging(log_level: str | None = None, json_output: bool | None = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        log_level: Level name; defaults to settings.LOG_LEVEL
        json_output: Force JSON rendering; defaults to LOG_FORMAT / APP_ENV
    """
    level = (log_level or settings.LOG_LEVEL).upper()
    if json_output is None:
        json_output = settings.LOG_FORMAT == "json" or settings.is_production

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
        processors = [*shared_processors, structlog.processors.format_exc_info, renderer]
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
        processors = [*shared_processors, renderer]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Bridge stdlib logging (uvicorn, sqlalchemy) into the same renderer
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a named structlog logger.

    Configures logging with defaults if setup_logging() has not run yet
    (scripts, alembic, tests).
    """
    if not structlog.is_configured():
        setup_logging()

    return structlog.get_logger(logger_name=name)
