"""Read-only context shared by every agent working on one parent task."""

from __future__ import annotations

import copy
import time
from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, set):
        return frozenset(_freeze(v) for v in value)
    return value


class SharedContext(Mapping[str, Any]):
    """Immutable after creation; nested mappings and sequences are frozen too."""

    __slots__ = ("task_id", "created_at", "_data")

    def __init__(self, task_id: str, data: Mapping[str, Any] | None = None) -> None:
        self.task_id = task_id
        self.created_at = time.time()
        self._data = _freeze(copy.deepcopy(dict(data or {})))

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"SharedContext(task_id={self.task_id!r}, keys={sorted(self._data)})"
