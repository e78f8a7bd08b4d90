"""Exception types for fluentify."""

from __future__ import annotations

from typing import Any


class FluentifyError(Exception):
    """Base exception for fluentify."""


class ConfigurationError(FluentifyError):
    """Raised when settings cannot be loaded or are inconsistent."""


class SessionBusyError(FluentifyError):
    """Raised when a session is finalized while it is still draining a chain."""


class OperationError(FluentifyError):
    """Raised for a chain failure whose error value is not an exception.

    Operations may report any value as their error (a string, an error code,
    a mapping). Awaiting a failed chain raises this wrapper and keeps the raw
    value on ``error``.
    """

    def __init__(self, error: Any, *, position: int | None = None, name: str | None = None) -> None:
        self.error = error
        self.position = position
        self.name = name
        where = f" in call #{position} ({name})" if position is not None else ""
        super().__init__(f"Operation failed{where}: {error!r}")
