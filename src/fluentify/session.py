"""Deferred call queue and sequential chain driver."""

from __future__ import annotations

import asyncio
import time
import uuid
from collections import deque
from collections.abc import Callable, Iterable, Mapping, MutableSequence
from enum import StrEnum
from typing import Any

import pluggy
from loguru import logger

from fluentify.completion import invoke
from fluentify.config import FluentSettings, load_settings
from fluentify.errors import OperationError, SessionBusyError
from fluentify.hook_runtime import HookRuntime
from fluentify.hookspecs import FLUENTIFY_HOOK_NAMESPACE, ChainHookSpecs
from fluentify.logging_utils import bind_chain, unbind_chain
from fluentify.references import resolve_arguments
from fluentify.results import ResultStore
from fluentify.types import Failure, Invocable, Outcome, PendingCall, Success


class ChainState(StrEnum):
    IDLE = "idle"
    DRAINING = "draining"
    COMPLETED = "completed"
    FAILED = "failed"


class FluentSession:
    """Hold queued calls for one chain and drain them strictly in order.

    Nothing runs until :meth:`finalize` (or :meth:`drain`). Each call sees the
    results of the calls completed before it, which is what makes ``"$1"``
    style back-references possible. The first failure aborts the chain and
    drops whatever is still queued.
    """

    def __init__(
        self,
        *,
        settings: FluentSettings | None = None,
        plugins: Iterable[object] = (),
    ) -> None:
        self.settings = settings or load_settings()
        self.id = uuid.uuid4().hex[:8]
        self._queue: deque[PendingCall] = deque()
        self._results = ResultStore()
        self._state = ChainState.IDLE
        self._last_state: ChainState | None = None
        self._chain_count = 0
        self._failed_call: tuple[int, str] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._plugin_manager = pluggy.PluginManager(FLUENTIFY_HOOK_NAMESPACE)
        self._plugin_manager.add_hookspecs(ChainHookSpecs)
        self._hooks = HookRuntime(self._plugin_manager)
        for plugin in plugins:
            self.register_plugin(plugin)

    @property
    def state(self) -> ChainState:
        return self._state

    @property
    def last_state(self) -> ChainState | None:
        """``COMPLETED`` or ``FAILED`` for the most recently settled chain."""
        return self._last_state

    @property
    def pending(self) -> int:
        return len(self._queue)

    def register_plugin(self, plugin: object, name: str | None = None) -> str | None:
        return self._plugin_manager.register(plugin, name=name)

    def hook_report(self) -> dict[str, list[str]]:
        return self._hooks.hook_report()

    def enqueue(
        self,
        invocable: Invocable,
        args: MutableSequence[Any] | Iterable[Any] | None = None,
        kwargs: Mapping[str, Any] | None = None,
        *,
        name: str | None = None,
    ) -> PendingCall | None:
        """Queue one call; non-callables are ignored."""

        if not callable(invocable):
            logger.debug("chain.enqueue.skipped session={} value={!r}", self.id, invocable)
            return None
        call_args = args if isinstance(args, list) else list(args or ())
        call = PendingCall(
            invocable=invocable,
            args=call_args,
            kwargs=dict(kwargs or {}),
            name=name or _name_of(invocable),
        )
        self._queue.append(call)
        return call

    def snapshot(self, handler: Callable[[list[list[Any]]], Any] | None = None) -> list[list[Any]] | None:
        """Copy of the results accumulated so far, passed to ``handler`` or returned."""

        results = self._results.snapshot()
        if handler is None:
            return results
        if callable(handler):
            handler(results)
        return None

    def finalize(self, handler: Callable[..., Any] | None = None) -> asyncio.Task[list[list[Any]]] | None:
        """Start draining the queue on the running loop.

        With ``handler`` the chain result is delivered as
        ``handler(error, *results)`` and nothing is returned. Without it a task
        is returned that resolves to the list of per-call results or raises
        the failure.
        """

        loop = asyncio.get_running_loop()
        self._begin()
        chain_number = self._chain_count
        if not callable(handler):
            result_task = loop.create_task(self._outcome_or_raise())
            result_task.add_done_callback(lambda done: self._release_cancelled(done, chain_number))
            return result_task
        task = loop.create_task(self._run_queue())
        self._tasks.add(task)
        task.add_done_callback(lambda done: self._release_cancelled(done, chain_number))
        task.add_done_callback(lambda done: self._deliver(done, handler))
        return None

    async def drain(self) -> list[list[Any]]:
        """Drain the queue in the current task and return per-call results."""

        self._begin()
        return await self._outcome_or_raise()

    def run(self) -> list[list[Any]]:
        """Drain the queue on a fresh event loop; for callers outside asyncio."""

        return asyncio.run(self.drain())

    def _begin(self) -> None:
        if self._state is ChainState.DRAINING:
            raise SessionBusyError(f"session {self.id} is already draining a chain")
        self._state = ChainState.DRAINING
        self._results.clear()
        self._failed_call = None
        self._chain_count += 1

    def _release_cancelled(self, task: asyncio.Task[Any], chain_number: int) -> None:
        # A task cancelled before its first step never reaches the drain loop cleanup.
        if not task.cancelled() or self._chain_count != chain_number:
            return
        if self._state is ChainState.DRAINING:
            discarded = len(self._queue)
            self._queue.clear()
            self._state = ChainState.IDLE
            logger.info("chain.released session={} discarded={}", self.id, discarded)

    async def _outcome_or_raise(self) -> list[list[Any]]:
        outcome = await self._run_queue()
        if isinstance(outcome, Failure):
            raise self._failure_exception(outcome.error)
        return list(outcome.values)

    async def _run_queue(self) -> Outcome:
        chain_id = f"{self.id}:{self._chain_count}"
        token = bind_chain(chain_id)
        started_at = time.monotonic()
        size = len(self._queue)
        try:
            logger.info("chain.start size={}", size)
            self._hooks.notify("chain_started", chain_id=chain_id, size=size)
            final: Outcome | None = None
            position = 0
            while self._queue:
                call = self._queue.popleft()
                position += 1
                outcome = await self._run_call(chain_id, position, call)
                if isinstance(outcome, Failure):
                    final = self._abort(position, call, outcome)
                    break
                self._results.append(outcome.values)
            if final is None:
                self._last_state = ChainState.COMPLETED
                final = Success(tuple(self._results.snapshot()))
            elapsed_ms = (time.monotonic() - started_at) * 1000
            logger.info("chain.{} calls={} duration={:.3f}ms", self._last_state, position, elapsed_ms)
            self._hooks.notify("chain_settled", chain_id=chain_id, outcome=final)
            return final
        finally:
            self._queue.clear()
            self._state = ChainState.IDLE
            unbind_chain(token)

    async def _run_call(self, chain_id: str, position: int, call: PendingCall) -> Outcome:
        resolve_arguments(call.args, self._results, call.kwargs)
        self._hooks.notify("call_started", chain_id=chain_id, position=position, name=call.name, args=list(call.args))
        logger.debug("chain.call.start position={} name={}", position, call.name)
        started_at = time.monotonic()
        outcome = await invoke(call)
        logger.debug(
            "chain.call.end position={} name={} ok={} duration={:.3f}ms",
            position,
            call.name,
            outcome.ok,
            (time.monotonic() - started_at) * 1000,
        )
        self._hooks.notify("call_finished", chain_id=chain_id, position=position, name=call.name, outcome=outcome)
        return outcome

    def _abort(self, position: int, call: PendingCall, failure: Failure) -> Failure:
        discarded = len(self._queue)
        self._queue.clear()
        logger.info(
            "chain.call.failed position={} name={} error={!r} discarded={}",
            position,
            call.name,
            failure.error,
            discarded,
        )
        if not self.settings.retain_partial_results:
            self._results.clear()
        self._failed_call = (position, call.name)
        self._last_state = ChainState.FAILED
        return failure

    def _failure_exception(self, error: Any) -> BaseException:
        if isinstance(error, BaseException):
            return error
        position, name = self._failed_call or (None, None)
        return OperationError(error, position=position, name=name)

    def _deliver(self, task: asyncio.Task[Outcome], handler: Callable[..., Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.warning("chain.cancelled session={}", self.id)
            return
        error = task.exception()
        outcome: Outcome = Failure(error) if error is not None else task.result()
        try:
            if isinstance(outcome, Failure):
                handler(outcome.error)
            else:
                handler(None, *outcome.values)
        except Exception:
            logger.opt(exception=True).warning("chain.handler_failed session={}", self.id)


def _name_of(invocable: Invocable) -> str:
    return getattr(invocable, "__qualname__", None) or getattr(invocable, "__name__", None) or type(invocable).__name__
