from typing import Any

import pytest

from fluentify.config import load_settings
from fluentify.errors import OperationError
from fluentify.hookspecs import hookimpl
from fluentify.session import FluentSession
from fluentify.types import Outcome


def inc(value: int, done: Any) -> None:
    done(None, value + 1)


class Recorder:
    def __init__(self) -> None:
        self.events: list[tuple[Any, ...]] = []

    @hookimpl
    def chain_started(self, size: int) -> None:
        self.events.append(("started", size))

    @hookimpl
    def call_started(self, position: int, name: str, args: list[Any]) -> None:
        self.events.append(("call", position, name, args))

    @hookimpl
    def call_finished(self, position: int, outcome: Outcome) -> None:
        self.events.append(("finished", position, outcome.ok))

    @hookimpl
    def chain_settled(self, chain_id: str, outcome: Outcome) -> None:
        self.events.append(("settled", outcome.ok))


class BrokenObserver:
    @hookimpl
    def call_started(self, position: int) -> None:
        raise RuntimeError("observer broke on purpose")


@pytest.mark.asyncio
async def test_observers_see_resolved_arguments_and_outcomes() -> None:
    recorder = Recorder()
    session = FluentSession(settings=load_settings(), plugins=[recorder])
    session.enqueue(inc, [9])
    session.enqueue(inc, ["$1"])

    await session.finalize()

    assert recorder.events == [
        ("started", 2),
        ("call", 1, "inc", [9]),
        ("finished", 1, True),
        ("call", 2, "inc", [10]),
        ("finished", 2, True),
        ("settled", True),
    ]


@pytest.mark.asyncio
async def test_observers_see_failure() -> None:
    recorder = Recorder()
    session = FluentSession(settings=load_settings(), plugins=[recorder])

    def fail(done: Any) -> None:
        done("E")

    session.enqueue(fail)
    session.enqueue(inc, [1])

    with pytest.raises(OperationError):
        await session.finalize()
    assert recorder.events[-2:] == [("finished", 1, False), ("settled", False)]
    assert not any(event[0] == "call" and event[1] == 2 for event in recorder.events)


@pytest.mark.asyncio
async def test_broken_observer_does_not_break_chain() -> None:
    session = FluentSession(settings=load_settings(), plugins=[BrokenObserver()])
    session.enqueue(inc, [1])
    assert await session.finalize() == [[2]]


def test_hook_report_lists_registered_observers() -> None:
    session = FluentSession(settings=load_settings())
    session.register_plugin(Recorder(), name="recorder")
    report = session.hook_report()
    assert report["chain_started"] == ["recorder"]
    assert report["call_finished"] == ["recorder"]
