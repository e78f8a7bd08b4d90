"""Pluggy hook namespace and chain observer specifications."""

from __future__ import annotations

from typing import Any

import pluggy

from fluentify.types import Outcome

FLUENTIFY_HOOK_NAMESPACE = "fluentify"
hookspec = pluggy.HookspecMarker(FLUENTIFY_HOOK_NAMESPACE)
hookimpl = pluggy.HookimplMarker(FLUENTIFY_HOOK_NAMESPACE)


class ChainHookSpecs:
    """Observer contract for chain execution."""

    @hookspec
    def chain_started(self, chain_id: str, size: int) -> None:
        """A session started draining ``size`` queued calls."""

    @hookspec
    def call_started(self, chain_id: str, position: int, name: str, args: list[Any]) -> None:
        """Call ``position`` (1-based) is about to run with resolved ``args``."""

    @hookspec
    def call_finished(self, chain_id: str, position: int, name: str, outcome: Outcome) -> None:
        """Call ``position`` reported its outcome."""

    @hookspec
    def chain_settled(self, chain_id: str, outcome: Outcome) -> None:
        """The chain completed or failed; success values are the per-call result lists."""
