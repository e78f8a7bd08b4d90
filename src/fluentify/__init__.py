"""fluentify - chain async operations and reference earlier results."""

from .chain import FluentChain, OperationRegistry, fluentify
from .config import FluentSettings, load_settings
from .errors import ConfigurationError, FluentifyError, OperationError, SessionBusyError
from .hookspecs import hookimpl
from .session import ChainState, FluentSession
from .types import Failure, Outcome, PendingCall, Success

__version__ = "0.1.0"

__all__ = [
    "ChainState",
    "ConfigurationError",
    "Failure",
    "FluentChain",
    "FluentSession",
    "FluentSettings",
    "FluentifyError",
    "OperationError",
    "OperationRegistry",
    "Outcome",
    "PendingCall",
    "SessionBusyError",
    "Success",
    "fluentify",
    "hookimpl",
    "load_settings",
]
