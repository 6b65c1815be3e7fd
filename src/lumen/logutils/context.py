"""Per-request logging context.

Each Streamlit script run handles one interaction for one browser session.
The context carries a correlation id plus the acting identity so that every
record emitted while handling that interaction can be tied together.
Backed by contextvars, so it is safe across threads and asyncio tasks.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any


@dataclass
class LogContext:
    """Contextual fields attached to log records."""

    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    operation: str | None = None
    user_id: str | None = None
    role: str | None = None
    view: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return the populated fields; unset optional fields are omitted."""
        result: dict[str, Any] = {"correlation_id": self.correlation_id}

        for name in ("operation", "user_id", "role", "view"):
            value = getattr(self, name)
            if value:
                result[name] = value

        result.update(self.extra)
        return result


_log_context: ContextVar[LogContext | None] = ContextVar("lumen_log_context", default=None)


def get_context() -> LogContext:
    """Return the current context, creating one if none is set."""
    ctx = _log_context.get()
    if ctx is None:
        ctx = LogContext()
        _log_context.set(ctx)
    return ctx


def set_context(context: LogContext) -> None:
    _log_context.set(context)


def clear_context() -> None:
    _log_context.set(None)


def get_correlation_id() -> str:
    return get_context().correlation_id


def set_correlation_id(correlation_id: str) -> None:
    get_context().correlation_id = correlation_id


class ContextManager:
    """Install a context for the duration of a block.

    Fields left as None are inherited from the enclosing context, so a nested
    ``with_context(operation="add_material")`` keeps the user and correlation
    id set by the outer request scope.
    """

    def __init__(
        self,
        correlation_id: str | None = None,
        operation: str | None = None,
        user_id: str | None = None,
        role: str | None = None,
        view: str | None = None,
        **extra: Any,
    ) -> None:
        self._fields = {
            "correlation_id": correlation_id,
            "operation": operation,
            "user_id": user_id,
            "role": role,
            "view": view,
        }
        self._extra = extra
        self._previous_context: LogContext | None = None

    def __enter__(self) -> LogContext:
        self._previous_context = _log_context.get()
        parent = self._previous_context

        values = {
            name: value if value is not None else (getattr(parent, name) if parent else None)
            for name, value in self._fields.items()
        }
        if values["correlation_id"] is None:
            values["correlation_id"] = str(uuid.uuid4())

        merged_extra = {**(parent.extra if parent else {}), **self._extra}
        new_context = LogContext(extra=merged_extra, **values)
        _log_context.set(new_context)
        return new_context

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        _log_context.set(self._previous_context)


def with_context(
    correlation_id: str | None = None,
    operation: str | None = None,
    user_id: str | None = None,
    role: str | None = None,
    view: str | None = None,
    **extra: Any,
) -> ContextManager:
    """Create a context manager with the given logging fields.

    Usage:
        with with_context(operation="login"):
            logger.info("Signing in")
    """
    return ContextManager(
        correlation_id=correlation_id,
        operation=operation,
        user_id=user_id,
        role=role,
        view=view,
        **extra,
    )


def update_context(**kwargs: Any) -> None:
    """Set fields on the current context; unknown names go into ``extra``."""
    ctx = get_context()
    for key, value in kwargs.items():
        if hasattr(ctx, key) and key != "extra":
            setattr(ctx, key, value)
        else:
            ctx.extra[key] = value
