import asyncio
from typing import Any

import pytest

from fluentify.chain import FluentChain, OperationRegistry, fluentify
from fluentify.config import load_settings
from fluentify.session import FluentSession


class Api:
    one = 1
    _two = "2"
    three = [3]

    def __init__(self) -> None:
        self.calls = 0

    def foo(self, delay: float, done: Any) -> None:
        self.calls += 1
        calls = self.calls
        if delay:
            asyncio.get_running_loop().call_later(delay, done, None, calls)
        else:
            done(None, calls)

    def _private(self) -> str:
        return "private"


def test_only_public_callables_become_operations() -> None:
    chain = fluentify(Api())
    assert chain.registry.names() == ["foo"]


def test_non_operation_attributes_are_read_from_target() -> None:
    chain = fluentify(Api())
    assert chain.one == 1
    assert chain._two == "2"
    assert chain.three == [3]
    assert chain._private() == "private"
    assert chain.session.pending == 0


def test_operation_calls_queue_and_return_the_chain() -> None:
    api = Api()
    chain = fluentify(api)
    assert chain.foo(0).foo(0) is chain
    assert chain.session.pending == 2
    assert api.calls == 0


def test_mapping_targets_are_supported() -> None:
    def inc(value: int, done: Any) -> None:
        done(None, value + 1)

    chain = fluentify({"inc": inc, "count": 3, "_hidden": inc})
    assert chain.registry.names() == ["inc"]
    assert chain.count == 3
    with pytest.raises(AttributeError):
        _ = chain.missing
    assert chain.inc(9).inc("$1").run() == [[10], [11]]


def test_reserved_names_log_override_warning(monkeypatch: pytest.MonkeyPatch) -> None:
    warnings: list[tuple[str, tuple[object, ...]]] = []

    def _capture(message: str, *args: object) -> None:
        warnings.append((message, args))

    monkeypatch.setattr("fluentify.chain.logger.warning", _capture)

    class Target:
        done = 1
        results: dict[str, int] = {}

    chain = fluentify(Target())
    assert [args[0] for _, args in warnings] == ["results", "done"]
    assert callable(chain.done)
    assert chain.results() == []


def test_override_warning_can_be_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    warnings: list[str] = []
    monkeypatch.setattr("fluentify.chain.logger.warning", lambda message, *args: warnings.append(message))

    fluentify({"done": 1}, settings=load_settings(warn_on_override=False))
    assert warnings == []


def test_done_with_callback_returns_none_and_without_returns_task() -> None:
    async def scenario() -> None:
        chain = fluentify(Api())
        settled = asyncio.Event()
        assert chain.done(lambda *args: settled.set()) is None
        await asyncio.wait_for(settled.wait(), timeout=1)
        task = chain.done()
        assert isinstance(task, asyncio.Task)
        assert await task == []

    asyncio.run(scenario())


@pytest.mark.asyncio
async def test_done_triggers_callback_with_results_after_last_call() -> None:
    api = Api()
    chain = fluentify(api)
    finished = asyncio.Event()
    received: list[tuple[Any, ...]] = []

    def on_done(*args: Any) -> None:
        received.append(args)
        finished.set()

    chain.foo(0).foo(0.02).foo(0.01).foo(0).done(on_done)
    await asyncio.wait_for(finished.wait(), timeout=1)
    assert api.calls == 4
    assert received == [(None, [1], [2], [3], [4])]


@pytest.mark.asyncio
async def test_done_resolves_with_results() -> None:
    api = Api()
    chain = fluentify(api)
    assert await chain.foo(0).foo(0.02).foo(0.01).done() == [[1], [2], [3]]

    api.calls = 0
    assert await chain.foo(0).drain() == [[1]]


@pytest.mark.asyncio
async def test_result_property_references() -> None:
    def init(done: Any) -> None:
        done(None, {"path": "0", "child": {"path": "0.0", "child": {"path": "0.0.0"}}})

    def foo(value: Any, done: Any) -> None:
        done(None, value)

    api = fluentify({"init": init, "foo": foo})
    results = await api.init().foo("$1.path").foo("$1.child.path").foo("$1.child.child.path").done()
    assert results[1][0] == "0"
    assert results[2][0] == "0.0"
    assert results[3][0] == "0.0.0"


@pytest.mark.asyncio
async def test_user_callback_on_a_call_rewrites_recorded_result() -> None:
    def fetch(key: str, done: Any) -> None:
        done(None, {"key": key, "size": 3})

    def echo(value: Any, done: Any) -> None:
        done(None, value)

    def only_size(error: Any, record: dict[str, Any], done: Any) -> None:
        done(error, record["size"])

    chain = fluentify({"fetch": fetch, "echo": echo})
    results = await chain.fetch("a", only_size).echo("$1").done()
    assert results == [[3], [3]]


def test_results_with_handler_keeps_chaining() -> None:
    chain = fluentify(Api())
    seen: list[Any] = []
    assert chain.results(seen.append) is chain
    assert seen == [[]]


def test_shared_session_is_used() -> None:
    session = FluentSession(settings=load_settings())
    chain = fluentify(Api(), session=session)
    assert chain.session is session
    assert isinstance(chain, FluentChain)


def test_registry_register_and_decorator() -> None:
    registry = OperationRegistry()

    @registry.register("ping")
    def ping(done: Any) -> None:
        done(None, "pong")

    registry.register("pong", ping)
    assert registry.names() == ["ping", "pong"]
    assert "ping" in registry
    assert len(registry) == 2
    assert registry.get("ping") is ping
    assert registry.get("missing") is None


def test_registry_rejects_non_callables_and_reserved_names() -> None:
    registry = OperationRegistry()
    with pytest.raises(TypeError):
        registry.register("value", 3)
    with pytest.raises(ValueError, match="reserved"):
        registry.register("done", lambda cb: cb())
    with pytest.raises(ValueError, match="reserved"):
        registry.register("_hidden", lambda cb: cb())
