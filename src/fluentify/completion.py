"""Completion adapter: exactly one outcome per pending call."""

from __future__ import annotations

import asyncio
import inspect
import threading
from collections.abc import Callable
from typing import Any

from loguru import logger

from fluentify.types import Failure, Outcome, PendingCall, outcome_from_signal


class CompletionAdapter:
    """Invoke one pending call and capture the first completion it reports.

    When the last positional argument is callable it is treated as the
    caller's own handler. The handler receives ``(error, *values, signal)``
    and has to call ``signal`` itself; whatever it forwards becomes the
    recorded outcome.
    """

    def __init__(self, call: PendingCall, loop: asyncio.AbstractEventLoop) -> None:
        self._call = call
        self._loop = loop
        self._loop_thread = threading.get_ident()
        self._future: asyncio.Future[Outcome] = loop.create_future()
        self._tasks: set[asyncio.Future[Any]] = set()

    async def run(self) -> Outcome:
        self._invoke()
        return await self._future

    def signal(self, error: Any = None, *values: Any) -> None:
        """Error-first completion signal handed to the operation."""
        self._report(outcome_from_signal(error, *values))

    def _invoke(self) -> None:
        args = self._call.args
        handler: Callable[..., Any] | None = None
        if args and callable(args[-1]):
            handler = args.pop()
        args.append(self.signal if handler is None else self._intercept(handler))
        self._run_guarded(self._call.invocable, *args, **self._call.kwargs)

    def _intercept(self, handler: Callable[..., Any]) -> Callable[..., None]:
        def intercepted(error: Any = None, *values: Any) -> None:
            self._run_guarded(handler, error, *values, self.signal)

        return intercepted

    def _run_guarded(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        try:
            result = func(*args, **kwargs)
        except Exception as exc:
            self._report(Failure(exc))
            return
        if inspect.isawaitable(result):
            if threading.get_ident() == self._loop_thread:
                self._watch(result)
            else:
                self._loop.call_soon_threadsafe(self._watch, result)

    def _watch(self, awaitable: Any) -> None:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        task.add_done_callback(self._on_awaitable_done)

    def _on_awaitable_done(self, task: asyncio.Future[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            self._report(Failure(asyncio.CancelledError()))
            return
        error = task.exception()
        if error is not None:
            self._report(Failure(error))
        elif not self._future.done():
            logger.debug("chain.signal.missing name={} awaitable finished without signalling", self._call.name)

    def _report(self, outcome: Outcome) -> None:
        if threading.get_ident() == self._loop_thread:
            self._settle(outcome)
        else:
            self._loop.call_soon_threadsafe(self._settle, outcome)

    def _settle(self, outcome: Outcome) -> None:
        if self._future.done():
            logger.debug("chain.signal.ignored name={} ok={}", self._call.name, outcome.ok)
            return
        self._future.set_result(outcome)


async def invoke(call: PendingCall) -> Outcome:
    """Run ``call`` on the current loop and wait for its outcome."""

    adapter = CompletionAdapter(call, asyncio.get_running_loop())
    return await adapter.run()
