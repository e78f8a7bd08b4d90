"""Ordered store of completed call results for one chain."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Mapping, Sequence
from typing import Any, Final

ABSENT: Final = object()
INDEX_SEGMENT_RE = re.compile(r"^[0-9]+$")


class ResultStore:
    """Append-only sequence of success values, one entry per completed call."""

    def __init__(self) -> None:
        self._entries: list[list[Any]] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[list[Any]]:
        return iter(self._entries)

    def append(self, values: Iterable[Any]) -> None:
        self._entries.append(list(values))

    def get(self, index: int) -> Any:
        """Return the entry at ``index`` or ``ABSENT`` when out of bounds."""
        if 0 <= index < len(self._entries):
            return self._entries[index]
        return ABSENT

    def clear(self) -> None:
        self._entries = []

    def snapshot(self) -> list[list[Any]]:
        return [list(entry) for entry in self._entries]


def unwrap(value: Any) -> Any:
    """Return the sole element of a one-element list or tuple, else ``value``."""

    if isinstance(value, (list, tuple)) and len(value) == 1:
        return value[0]
    return value


def traverse(value: Any, path: Sequence[str]) -> Any:
    """Walk ``path`` into ``value``, stopping at the last segment that resolves.

    Numeric segments index sequences, any other segment is looked up as a
    mapping key or attribute. A segment that resolves to nothing ends the walk
    and the value reached before it is returned.
    """

    current = value
    for segment in path:
        found = _lookup(current, segment)
        if found is ABSENT or found is None:
            break
        current = found
    return current


def _lookup(value: Any, segment: str) -> Any:
    position = int(segment) if INDEX_SEGMENT_RE.match(segment) else None
    if position is not None and isinstance(value, Sequence) and not isinstance(value, Mapping):
        if position < len(value):
            return value[position]
        return ABSENT
    if isinstance(value, Mapping):
        if segment in value:
            return value[segment]
        if position is not None and position in value:
            return value[position]
        return ABSENT
    if segment.isidentifier() and not segment.startswith("_"):
        return getattr(value, segment, ABSENT)
    return ABSENT
