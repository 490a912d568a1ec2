import logging
import sys

import structlog
from structlog.stdlib import LoggerFactory

from bytecode_cfg.config import DEFAULT_LOG_LEVEL, DEFAULT_LOG_RENDERER, LOG_RENDERERS


def configure_logging(log_level=DEFAULT_LOG_LEVEL, renderer=DEFAULT_LOG_RENDERER):
    """Configure structured logging"""
    # Check if already configured
    if structlog.is_configured():
        return

    if renderer not in LOG_RENDERERS:
        raise ValueError(f"Unknown log renderer {renderer!r}, expected one of {LOG_RENDERERS}")

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper(), logging.INFO),
        stream=sys.stderr,
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
            if renderer == "json"
            else structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logger = structlog.get_logger()
    logger.info("Logging configured", log_level=log_level, renderer=renderer)
