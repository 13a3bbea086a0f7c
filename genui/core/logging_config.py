"""
Structured Logging
structlog over stdlib logging, console or JSON output.
"""

import logging
import sys
from typing import IO

import structlog
from pythonjsonlogger import jsonlogger

# Chatty transport loggers kept at WARNING unless running at DEBUG
QUIET_LOGGERS = ("httpx", "httpcore", "langchain_core")


def configure_logging(level: str = "INFO", json_logs: bool = False, stream: IO[str] | None = None) -> None:
    """
    Configure logging for the engine.

    Safe to call more than once; the last call wins.

    Args:
        level: Log level name (unknown names fall back to INFO)
        json_logs: One JSON object per line instead of console output
        stream: Output stream, stdout by default
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    handler = logging.StreamHandler(stream or sys.stdout)
    if json_logs:
        handler.setFormatter(
            jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
    else:
        handler.setFormatter(logging.Formatter("%(message)s"))
    logging.basicConfig(level=log_level, handlers=[handler], force=True)

    if log_level > logging.DEBUG:
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.render_to_log_kwargs if json_logs else structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger for a module (pass __name__)."""
    return structlog.get_logger(name)
