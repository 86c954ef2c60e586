"""
Structured logging for the storage service.

Application code logs through structlog; records emitted by libraries via
the standard ``logging`` module (uvicorn, minio, botocore) end up on the
same stream.
"""
import logging
import sys
from typing import Any, Dict, List, Optional

import structlog
from rich.console import Console
from rich.logging import RichHandler

from .config import settings

# Client libraries that are chatty at INFO
NOISY_LOGGERS = ("botocore", "boto3", "s3transfer", "urllib3")


def _use_console_output() -> bool:
    return settings.is_development or settings.log_format == "console"


def _build_processors(console: bool) -> List[Any]:
    processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if console:
        processors += [structlog.dev.set_exc_info, structlog.dev.ConsoleRenderer(colors=True)]
    else:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return processors


def _stdlib_handler(console: bool) -> logging.Handler:
    if console:
        return RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s %(message)s"))
    return handler


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure structlog and the standard library root logger.

    Args:
        level: Log level name, defaults to ``settings.log_level``
    """
    level_no = logging.getLevelName((level or settings.log_level).upper())
    console = _use_console_output()

    root = logging.getLogger()
    root.handlers[:] = [_stdlib_handler(console)]
    root.setLevel(level_no)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level_no, logging.WARNING))

    structlog.configure(
        processors=_build_processors(console),
        wrapper_class=structlog.make_filtering_bound_logger(level_no),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Event fields describing ``error``, to be splatted into a log call."""
    fields: Dict[str, Any] = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }
    if context:
        fields.update(context)
    return fields


configure_logging()

logger = get_logger("cloudfs")
