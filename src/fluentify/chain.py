"""Fluent wrapper that turns an object's operations into chainable calls."""

from __future__ import annotations

import functools
from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any

from loguru import logger

from fluentify.config import FluentSettings, load_settings
from fluentify.session import FluentSession
from fluentify.types import Invocable

RESERVED_NAMES = ("results", "done", "drain", "run", "session", "registry", "target")


class OperationRegistry:
    """Named operations available on a fluent chain."""

    def __init__(self) -> None:
        self._operations: dict[str, Invocable] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._operations

    def __len__(self) -> int:
        return len(self._operations)

    def __iter__(self) -> Iterator[str]:
        return iter(self._operations)

    def register(self, name: str, invocable: Invocable | None = None) -> Any:
        """Register ``invocable`` under ``name``; without it, return a decorator."""

        if invocable is None:

            def decorator(func: Invocable) -> Invocable:
                self.register(name, func)
                return func

            return decorator

        if not callable(invocable):
            raise TypeError(f"operation {name!r} is not callable: {invocable!r}")
        if name.startswith("_") or name in RESERVED_NAMES:
            raise ValueError(f"operation name {name!r} is reserved")
        self._operations[name] = invocable
        return invocable

    def get(self, name: str) -> Invocable | None:
        return self._operations.get(name)

    def names(self) -> list[str]:
        return sorted(self._operations)

    @classmethod
    def from_object(cls, target: Any) -> OperationRegistry:
        """Collect every public callable of ``target`` (an object or a mapping)."""

        registry = cls()
        for name, value in _public_members(target):
            if callable(value) and name not in RESERVED_NAMES:
                registry.register(name, value)
        return registry


class FluentChain:
    """Chainable proxy over a target's operations.

    Calling an operation queues it and returns the chain, so calls can be
    strung together and finished with :meth:`done`. Anything that is not an
    operation is read straight from the target.
    """

    def __init__(self, target: Any, registry: OperationRegistry, session: FluentSession) -> None:
        self._target = target
        self._registry = registry
        self._session = session

    def __getattr__(self, name: str) -> Any:
        registry = self.__dict__.get("_registry")
        if registry is None:
            raise AttributeError(name)
        operation = registry.get(name)
        if operation is not None:
            return self._chained(name, operation)
        target = self.__dict__["_target"]
        if isinstance(target, Mapping):
            if name in target:
                return target[name]
            raise AttributeError(name)
        return getattr(target, name)

    def __repr__(self) -> str:
        return f"FluentChain(target={self._target!r}, pending={self._session.pending})"

    @property
    def session(self) -> FluentSession:
        return self._session

    @property
    def registry(self) -> OperationRegistry:
        return self._registry

    @property
    def target(self) -> Any:
        return self._target

    def done(self, handler: Callable[..., Any] | None = None) -> Any:
        """Finalize the chain; see :meth:`FluentSession.finalize`."""
        return self._session.finalize(handler)

    def results(self, handler: Callable[[list[list[Any]]], Any] | None = None) -> Any:
        """Peek at results so far; with ``handler`` the chain is returned for more calls."""
        if handler is None:
            return self._session.snapshot()
        self._session.snapshot(handler)
        return self

    async def drain(self) -> list[list[Any]]:
        return await self._session.drain()

    def run(self) -> list[list[Any]]:
        return self._session.run()

    def _chained(self, name: str, operation: Invocable) -> Callable[..., FluentChain]:
        @functools.wraps(operation)
        def enqueue(*args: Any, **kwargs: Any) -> FluentChain:
            self._session.enqueue(operation, list(args), kwargs, name=name)
            return self

        return enqueue


def fluentify(
    target: Any,
    *,
    session: FluentSession | None = None,
    settings: FluentSettings | None = None,
    plugins: Iterable[object] = (),
) -> FluentChain:
    """Wrap ``target`` so its public operations can be chained."""

    if settings is None:
        settings = session.settings if session is not None else load_settings()
    if settings.warn_on_override:
        for name in RESERVED_NAMES:
            if _defines(target, name):
                logger.warning('chain.name_collision name={} "{}" property will be overridden', name, name)
    registry = OperationRegistry.from_object(target)
    if session is None:
        session = FluentSession(settings=settings, plugins=plugins)
    else:
        for plugin in plugins:
            session.register_plugin(plugin)
    return FluentChain(target, registry, session)


def _defines(target: Any, name: str) -> bool:
    if isinstance(target, Mapping):
        return name in target
    return hasattr(target, name)


def _public_members(target: Any) -> Iterator[tuple[str, Any]]:
    if isinstance(target, Mapping):
        for key, value in target.items():
            if isinstance(key, str) and not key.startswith("_"):
                yield key, value
        return
    for name in dir(target):
        if name.startswith("_"):
            continue
        try:
            value = getattr(target, name)
        except AttributeError:
            continue
        yield name, value
