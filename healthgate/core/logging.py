"""
healthgate/core/logging.py
Structured logging setup using structlog

structlog events and plain stdlib records (uvicorn's server and access
logs) go through one ProcessorFormatter, so both come out in the same
format. Calling ``setup_logging`` again replaces the previous setup.
"""

import logging
import sys
from typing import Optional
import structlog
from structlog.stdlib import BoundLogger, ProcessorFormatter
from .config import Settings, get_settings

HANDLER_NAME = "healthgate"

# stdlib loggers that uvicorn writes to; they propagate to our root handler
UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def _renderer(config: Settings):
    if config.LOG_FORMAT == "json":
        return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]


def setup_logging(config: Optional[Settings] = None) -> BoundLogger:
    """
    Configure structured logging from ``config`` (process settings by default)
    Returns configured logger instance
    """
    config = config or get_settings()
    level = getattr(logging, config.LOG_LEVEL)

    # Run for structlog events and for foreign stdlib records alike
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        # each create_app() may reconfigure; module-level loggers must follow
        cache_logger_on_first_use=False,
    )

    formatter = ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[ProcessorFormatter.remove_processors_meta, *_renderer(config)],
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in UVICORN_LOGGERS:
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.propagate = True

    logger = structlog.get_logger("healthgate")
    logger.info(
        "logging_configured",
        level=config.LOG_LEVEL,
        format=config.LOG_FORMAT,
        environment=config.ENVIRONMENT
    )

    return logger


def get_logger(name: Optional[str] = None) -> BoundLogger:
    """Logger under the ``healthgate`` namespace, e.g. ``get_logger("cli")``."""
    if name:
        return structlog.get_logger(f"healthgate.{name}")
    return structlog.get_logger("healthgate")


class LogContext:
    """
    Binds key/values into structlog contextvars for the enclosed block and
    restores the previous values on exit, so nested contexts unwind cleanly.

    Usage:
        with LogContext(request_id="123", path="/health"):
            logger.info("probing_dependencies")
    """

    def __init__(self, **kwargs):
        self.context = kwargs
        self._tokens = {}

    def __enter__(self):
        self._tokens = structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        structlog.contextvars.reset_contextvars(**self._tokens)
        return False


__all__ = ["setup_logging", "get_logger", "LogContext", "HANDLER_NAME"]
