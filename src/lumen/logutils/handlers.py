"""Log handlers for the portal's output targets."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import IO

from rich.console import Console
from rich.text import Text


class RichConsoleHandler(logging.Handler):
    """Colorized console output for local Streamlit development."""

    LEVEL_STYLES = {
        "DEBUG": "dim",
        "INFO": "blue",
        "WARNING": "yellow",
        "ERROR": "red bold",
        "CRITICAL": "red bold reverse",
    }

    def __init__(self, console: Console | None = None, show_path: bool = False) -> None:
        """Initialize the handler.

        Args:
            console: Rich Console to print to (stderr console if None)
            show_path: Append file name and line number to each record
        """
        super().__init__()
        self.console = console or Console(stderr=True)
        self.show_path = show_path

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            style = self.LEVEL_STYLES.get(record.levelname, "")

            text = Text()
            text.append(f"[{record.levelname:8}]", style=style)
            text.append(f" {record.name}: ", style="dim")
            # Messages may contain user-typed text; never interpret it as markup
            text.append(Text(message))

            if self.show_path:
                text.append(f" ({record.filename}:{record.lineno})", style="dim")

            self.console.print(text)
        except Exception:
            self.handleError(record)


class SafeRotatingFileHandler(RotatingFileHandler):
    """RotatingFileHandler that creates its directory and writes UTF-8."""

    DEFAULT_MAX_BYTES = 10 * 1024 * 1024
    DEFAULT_BACKUP_COUNT = 5

    def __init__(
        self,
        filename: str | Path,
        max_bytes: int = DEFAULT_MAX_BYTES,
        backup_count: int = DEFAULT_BACKUP_COUNT,
        encoding: str = "utf-8",
    ) -> None:
        log_path = Path(filename)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        super().__init__(
            filename=str(log_path),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding=encoding,
        )


class BufferingHandler(logging.Handler):
    """Keep the most recent records in memory.

    Loggers returned by get_logger do not propagate to the root logger, so
    tests attach this handler to inspect what a component logged.
    """

    def __init__(self, capacity: int = 1000) -> None:
        super().__init__()
        self.capacity = capacity
        self.buffer: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.buffer.append(record)
        if len(self.buffer) > self.capacity:
            self.buffer.pop(0)

    def get_records(self) -> list[logging.LogRecord]:
        return list(self.buffer)

    def get_messages(self) -> list[str]:
        return [record.getMessage() for record in self.buffer]

    def clear(self) -> None:
        self.buffer.clear()


class StreamHandlerWithFlush(logging.StreamHandler):
    """StreamHandler that flushes after every record.

    Streamlit Cloud and container log collectors read stderr line by line.
    """

    def __init__(self, stream: IO[str] | None = None) -> None:
        super().__init__(stream or sys.stderr)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            super().emit(record)
            self.flush()
        except Exception:
            self.handleError(record)
