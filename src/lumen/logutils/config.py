"""Logging configuration for the Lumen portal.

Defaults depend on where the portal runs: a developer's Streamlit session gets
Rich console output, a hosted deployment gets JSON lines, tests get plain text.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

_TRUTHY = ("true", "1", "yes", "on")


class Environment(Enum):
    """Runtime environment of the portal."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"
    CI = "ci"


class LogOutput(Enum):
    """Where log records are written."""

    CONSOLE = "console"
    FILE = "file"
    BOTH = "both"
    JSON = "json"


@dataclass
class LogConfig:
    """Logging configuration container."""

    level: str = "INFO"
    output: LogOutput = LogOutput.CONSOLE
    json_format: bool = False
    use_rich: bool = True

    # Passwords, API keys, session tokens and e-mail addresses
    mask_sensitive: bool = True

    include_correlation_id: bool = True
    log_file: Path | None = None

    # 10 MB
    max_file_size: int = 10 * 1024 * 1024
    backup_count: int = 5

    # Per-logger overrides, e.g. {"httpx": "WARNING"}
    module_levels: dict[str, str] = field(default_factory=dict)

    # Static fields added to every JSON record
    extra_fields: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> LogConfig:
        """Build a configuration from the environment.

        Environment variables:
            LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL
            LOG_OUTPUT: console, file, both or json
            LOG_JSON: Use JSON format (true/false)
            LOG_RICH: Use the Rich console handler (true/false)
            LOG_MASK_SENSITIVE: Mask credentials and PII (true/false)
            LOG_FILE: Log file path
            LOG_MAX_SIZE: Max file size in bytes before rotation
            LOG_BACKUP_COUNT: Number of rotated files to keep

        Returns:
            LogConfig for the detected environment with overrides applied
        """
        config = cls._get_defaults_for_env(cls._detect_environment())

        if level := os.getenv("LOG_LEVEL"):
            config.level = level.upper()

        if output := os.getenv("LOG_OUTPUT"):
            try:
                config.output = LogOutput(output.lower())
            except ValueError:
                pass

        if json_format := os.getenv("LOG_JSON"):
            config.json_format = json_format.lower() in _TRUTHY

        if use_rich := os.getenv("LOG_RICH"):
            config.use_rich = use_rich.lower() in _TRUTHY

        if mask_sensitive := os.getenv("LOG_MASK_SENSITIVE"):
            config.mask_sensitive = mask_sensitive.lower() in _TRUTHY

        if log_file := os.getenv("LOG_FILE"):
            config.log_file = Path(log_file)

        if max_size := os.getenv("LOG_MAX_SIZE"):
            try:
                config.max_file_size = int(max_size)
            except ValueError:
                pass

        if backup_count := os.getenv("LOG_BACKUP_COUNT"):
            try:
                config.backup_count = int(backup_count)
            except ValueError:
                pass

        # The Supabase client logs every HTTP request at INFO through httpx
        config.module_levels.setdefault("httpx", "WARNING")

        return config

    @staticmethod
    def _detect_environment() -> Environment:
        if os.getenv("CI") or os.getenv("GITHUB_ACTIONS"):
            return Environment.CI

        env_name = os.getenv("LUMEN_ENV", os.getenv("ENVIRONMENT", "")).lower()
        if env_name in ("prod", "production"):
            return Environment.PRODUCTION
        if env_name in ("test", "testing"):
            return Environment.TESTING

        if os.getenv("PYTEST_CURRENT_TEST"):
            return Environment.TESTING

        return Environment.DEVELOPMENT

    @classmethod
    def _get_defaults_for_env(cls, env: Environment) -> LogConfig:
        if env == Environment.PRODUCTION:
            return cls(level="INFO", output=LogOutput.CONSOLE, json_format=True, use_rich=False)

        if env == Environment.CI:
            return cls(level="INFO", use_rich=False)

        if env == Environment.TESTING:
            return cls(level="DEBUG", use_rich=False)

        return cls(level="DEBUG", use_rich=True)


_config: LogConfig | None = None


def get_config() -> LogConfig:
    """Return the active logging configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = LogConfig.from_env()
    return _config


def set_config(config: LogConfig) -> None:
    """Replace the active logging configuration."""
    global _config
    _config = config


def reset_config() -> None:
    """Forget the active configuration so the next call re-reads the environment."""
    global _config
    _config = None
