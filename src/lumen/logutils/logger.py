"""Logger factory for the Lumen portal.

Every module obtains its logger with ``get_logger(__name__)``. Loggers are
configured once from the active LogConfig and do not propagate, so records are
not duplicated by Streamlit's own root handler.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

from .config import LogConfig, LogOutput, get_config
from .formatters import CompactFormatter, JSONFormatter, StandardFormatter
from .handlers import RichConsoleHandler, SafeRotatingFileHandler, StreamHandlerWithFlush

_configured_loggers: set[str] = set()
_root_configured: bool = False


def get_logger(name: str | None = None, config: LogConfig | None = None) -> logging.Logger:
    """Return a configured logger.

    Args:
        name: Logger name, usually ``__name__``; None for the root logger
        config: Configuration to apply instead of the active one

    Returns:
        The configured Logger
    """
    logger = logging.getLogger(name)
    key = name or "root"

    if key not in _configured_loggers:
        _configure_logger(logger, config or get_config())
        _configured_loggers.add(key)

    return logger


def _configure_logger(logger: logging.Logger, config: LogConfig) -> None:
    level = config.module_levels.get(logger.name, config.level)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    logger.handlers.clear()
    if logger.name != "root":
        logger.propagate = False

    for handler in _create_handlers(config):
        logger.addHandler(handler)


def _create_handlers(config: LogConfig) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []

    def json_formatter() -> JSONFormatter:
        return JSONFormatter(mask_sensitive=config.mask_sensitive, extra_fields=config.extra_fields)

    if config.output in (LogOutput.CONSOLE, LogOutput.BOTH):
        handler: logging.Handler
        if config.json_format:
            handler = StreamHandlerWithFlush(sys.stderr)
            handler.setFormatter(json_formatter())
        elif config.use_rich:
            handler = RichConsoleHandler()
            handler.setFormatter(CompactFormatter(mask_sensitive=config.mask_sensitive))
        else:
            handler = StreamHandlerWithFlush(sys.stderr)
            handler.setFormatter(StandardFormatter(mask_sensitive=config.mask_sensitive))
        handlers.append(handler)

    if config.output == LogOutput.JSON:
        handler = StreamHandlerWithFlush(sys.stderr)
        handler.setFormatter(json_formatter())
        handlers.append(handler)

    if config.output in (LogOutput.FILE, LogOutput.BOTH) and config.log_file:
        handler = SafeRotatingFileHandler(
            filename=config.log_file,
            max_bytes=config.max_file_size,
            backup_count=config.backup_count,
        )
        # Files are always machine-readable
        handler.setFormatter(json_formatter())
        handlers.append(handler)

    return handlers


def configure_root_logger(config: LogConfig | None = None) -> None:
    """Configure the root logger and per-module level overrides.

    Called once from the Streamlit entry point; later calls are no-ops.
    Third-party loggers (supabase, httpx, urllib3) reach the root handlers
    through propagation.
    """
    global _root_configured

    if _root_configured:
        return

    cfg = config or get_config()
    _configure_logger(logging.getLogger(), cfg)

    for module_name, level in cfg.module_levels.items():
        logging.getLogger(module_name).setLevel(getattr(logging, level.upper(), logging.INFO))

    _root_configured = True


def reset_logging() -> None:
    """Drop handlers from every logger configured here."""
    global _root_configured

    for name in _configured_loggers:
        logging.getLogger(name if name != "root" else None).handlers.clear()

    _configured_loggers.clear()
    _root_configured = False


class LoggerAdapter(logging.LoggerAdapter):
    """Attach fixed structured data to every record of a logger.

    The data ends up under ``extra`` in JSON output.
    """

    def __init__(self, logger: logging.Logger, extra: dict[str, Any] | None = None) -> None:
        super().__init__(logger, extra or {})

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = {**self.extra, **kwargs.get("extra", {})}
        kwargs["extra"] = {"extra_data": extra}
        return msg, kwargs


def with_extra(logger: logging.Logger, **extra: Any) -> LoggerAdapter:
    """Wrap a logger so every record carries ``extra``.

    Usage:
        log = with_extra(logger, table="materials")
        log.info("Inserted row")
    """
    return LoggerAdapter(logger, extra)
