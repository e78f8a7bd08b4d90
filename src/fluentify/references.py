"""Back-reference placeholders embedded in chain call arguments.

A placeholder is a string such as ``"$2"`` or ``"$1.children.0.name"``. The
number is the 1-based position of an already completed call in the same
chain; the dotted segments walk into that call's result.
"""

from __future__ import annotations

import re
from collections.abc import MutableMapping, MutableSequence
from dataclasses import dataclass
from typing import Any, TypeAlias

from fluentify.results import ABSENT, ResultStore, traverse, unwrap

REFERENCE_PREFIX = "$"
HEAD_RE = re.compile(r"^\$([0-9]+)$")


@dataclass(frozen=True)
class Literal:
    """An argument passed through unchanged."""

    value: Any


@dataclass(frozen=True)
class Reference:
    """A parsed placeholder: 0-based result index plus traversal path."""

    index: int
    path: tuple[str, ...] = ()


Argument: TypeAlias = Literal | Reference


def parse_argument(arg: Any) -> Argument:
    """Classify one call argument as a literal value or a result reference."""

    if not isinstance(arg, str) or not arg.startswith(REFERENCE_PREFIX):
        return Literal(arg)
    head, *path = arg.split(".")
    match = HEAD_RE.match(head)
    if match is None:
        return Literal(arg)
    return Reference(index=int(match.group(1)) - 1, path=tuple(path))


def resolve_reference(reference: Reference, store: ResultStore) -> Any:
    """Look up ``reference`` in ``store``; ``ABSENT`` when the index is not there yet."""

    entry = store.get(reference.index)
    if entry is ABSENT:
        return ABSENT
    return traverse(unwrap(entry), reference.path)


def resolve_arguments(
    args: MutableSequence[Any],
    store: ResultStore,
    kwargs: MutableMapping[str, Any] | None = None,
) -> int:
    """Replace placeholder arguments in place; returns how many were replaced."""

    replaced = 0
    for position, arg in enumerate(args):
        value = _resolve_one(arg, store)
        if value is not ABSENT:
            args[position] = value
            replaced += 1
    if kwargs:
        for key, arg in kwargs.items():
            value = _resolve_one(arg, store)
            if value is not ABSENT:
                kwargs[key] = value
                replaced += 1
    return replaced


def _resolve_one(arg: Any, store: ResultStore) -> Any:
    parsed = parse_argument(arg)
    if isinstance(parsed, Literal):
        return ABSENT
    return resolve_reference(parsed, store)
