"""
gdocs-source - Structured Logging

Configures structlog with dual output:
    Console - human-readable on stderr at *console_level*
    File    - rotating JSON at {log_dir}/gdocs-source.log (10 MB, 5 backups),
              only when a log directory is configured

Library modules log through the stdlib (``logging.getLogger(__name__)``);
those records are rendered by the same structlog processor chain.

Never log: API keys, client secrets, OAuth token contents.

Usage:
    from gdocs_source.config import get_settings
    from gdocs_source.logger import configure_logging, get_logger

    configure_logging(get_settings())
    log = get_logger(__name__)
    log.info("import_started", folders=2)

Version: 0.1.0
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Any, Optional

import structlog

from .config import SourceSettings

__all__ = ['configure_logging', 'get_logger', 'LOG_FILENAME']

LOG_FILENAME = "gdocs-source.log"

# Run for every log record, structlog-native and foreign (stdlib) alike.
_SHARED_PROCESSORS: list[Any] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.ExceptionRenderer(),
]


def configure_logging(
    settings: SourceSettings,
    *,
    console_level: Optional[str] = None,
) -> None:
    """Initialise structlog and stdlib logging.

    Safe to call more than once: handlers are only added when the root
    logger does not already carry one of the same kind.

    Args:
        settings: Provides ``log_level`` and the optional ``log_dir``.
        console_level: Minimum level for the stderr handler. Defaults to
            the configured ``log_level``.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    con_level = getattr(
        logging, (console_level or settings.log_level).upper(), logging.INFO
    )

    structlog.configure(
        processors=_SHARED_PROCESSORS + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )

    json_formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.JSONRenderer(),
        ],
        foreign_pre_chain=_SHARED_PROCESSORS,
    )

    console_formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        foreign_pre_chain=_SHARED_PROCESSORS,
    )

    root = logging.getLogger()

    has_rotating = any(
        isinstance(h, logging.handlers.RotatingFileHandler)
        for h in root.handlers
    )
    has_stream = any(
        type(h) is logging.StreamHandler
        for h in root.handlers
    )

    log_dir: Optional[Path] = settings.log_path
    if log_dir is not None and not has_rotating:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_dir / LOG_FILENAME,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(json_formatter)
        file_handler.setLevel(level)
        root.addHandler(file_handler)

    if not has_stream:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(console_formatter)
        console_handler.setLevel(con_level)
        root.addHandler(console_handler)

    root.setLevel(level)
    # googleapiclient is chatty at INFO about discovery caches
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)


def get_logger(name: str = "gdocs_source") -> structlog.stdlib.BoundLogger:
    """Return a bound structlog logger.

    Args:
        name: Logger name, typically ``__name__`` of the calling module.
    """
    return structlog.get_logger(name)
