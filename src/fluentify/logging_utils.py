"""Runtime logging helpers."""

from __future__ import annotations

import os
import sys
from contextvars import ContextVar, Token
from logging import Handler
from typing import Literal

import loguru
from loguru import logger
from rich import get_console
from rich.logging import RichHandler

LogProfile = Literal["default", "console"]

_PROFILE_FORMATS: dict[LogProfile, str] = {
    "console": "{extra[chain]} | {message}",
    "default": "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<6} | {name}:{function}:{line} | {extra[chain]} | {message}",
}
_CONFIGURED: tuple[LogProfile, str] | None = None
_chain_context: ContextVar[str] = ContextVar("chain")


def current_chain() -> str:
    """Get the id of the chain being drained in this context."""
    return _chain_context.get("-")


def bind_chain(chain_id: str) -> Token[str]:
    """Mark the current context as draining ``chain_id``; returns a reset token."""
    return _chain_context.set(chain_id)


def unbind_chain(token: Token[str]) -> None:
    _chain_context.reset(token)


def _build_console_handler() -> Handler:
    return RichHandler(
        console=get_console(),
        show_level=True,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )


def configure_logging(*, profile: LogProfile = "default", level: str | None = None) -> None:
    """Configure process-level logging; repeated calls with the same profile and level are no-ops."""

    def inject_context(record: loguru.Record) -> None:
        record["extra"]["chain"] = current_chain()

    global _CONFIGURED
    level = (level or os.getenv("FLUENTIFY_LOG_LEVEL", "INFO")).upper()
    if (profile, level) == _CONFIGURED:
        return

    logger.remove()
    logger.configure(patcher=inject_context)
    if profile == "console":
        logger.add(
            _build_console_handler(),
            level=level,
            format=_PROFILE_FORMATS[profile],
            backtrace=False,
            diagnose=False,
        )
    else:
        logger.add(
            sys.stderr,
            level=level,
            format=_PROFILE_FORMATS[profile],
            backtrace=False,
            diagnose=False,
        )
    _CONFIGURED = (profile, level)
