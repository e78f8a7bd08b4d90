"""Framework-neutral data types shared by the chain core."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TypeAlias

CompletionSignal: TypeAlias = Callable[..., None]
Invocable: TypeAlias = Callable[..., Any]


@dataclass(frozen=True)
class Success:
    """Outcome of a call that reported zero or more values."""

    values: tuple[Any, ...] = ()

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """Outcome of a call that reported an error."""

    error: Any

    @property
    def ok(self) -> bool:
        return False


Outcome: TypeAlias = Success | Failure


def outcome_from_signal(error: Any = None, *values: Any) -> Outcome:
    """Convert one error-first completion signal into a typed outcome."""

    if error is not None:
        return Failure(error)
    return Success(tuple(values))


@dataclass
class PendingCall:
    """One deferred operation waiting in a session queue.

    ``args`` is resolved in place right before invocation and may end with a
    caller-supplied completion handler.
    """

    invocable: Invocable
    args: list[Any] = field(default_factory=list)
    kwargs: dict[str, Any] = field(default_factory=dict)
    name: str = "<anonymous>"
