"""Logging infrastructure for the Lumen portal.

Provides:
- Rich console output during local development
- JSON lines for hosted deployments
- Correlation ids and acting-user context per interaction
- Masking of passwords, API keys, session tokens and e-mail addresses

Usage:
    from lumen.logutils import get_logger, with_context

    logger = get_logger(__name__)

    with with_context(operation="add_material", user_id=user.id):
        logger.info("Adding material")

Masking helpers live in ``lumen.logutils.masking``.
"""

from .config import Environment, LogConfig, LogOutput, get_config, reset_config, set_config
from .context import LogContext, clear_context, get_context, update_context, with_context
from .formatters import CompactFormatter, JSONFormatter, StandardFormatter
from .handlers import (
    BufferingHandler,
    RichConsoleHandler,
    SafeRotatingFileHandler,
    StreamHandlerWithFlush,
)
from .logger import configure_root_logger, get_logger, reset_logging, with_extra
from .masking import SensitiveValue

__all__ = [
    "get_logger",
    "configure_root_logger",
    "reset_logging",
    "with_extra",
    "with_context",
    "get_context",
    "clear_context",
    "update_context",
    "LogContext",
    "LogConfig",
    "LogOutput",
    "Environment",
    "get_config",
    "set_config",
    "reset_config",
    "JSONFormatter",
    "StandardFormatter",
    "CompactFormatter",
    "RichConsoleHandler",
    "SafeRotatingFileHandler",
    "BufferingHandler",
    "StreamHandlerWithFlush",
    "SensitiveValue",
]
