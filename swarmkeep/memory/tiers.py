"""The four memory tiers held by a single agent."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator
from typing import Any

from ..types import EpisodeRecord, Interaction, SkillBinding


class WorkingMemory:
    """Bounded FIFO window of recent perception/response pairs."""

    name = "working"

    def __init__(self, capacity: int = 10) -> None:
        self.capacity = capacity
        self._items: deque[Interaction] = deque(maxlen=capacity)

    def add(self, item: Interaction) -> Interaction | None:
        """Append, returning the evicted item when the window was full."""
        evicted = self._items[0] if len(self._items) == self.capacity else None
        self._items.append(item)
        return evicted

    def items(self) -> list[Interaction]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)


class EpisodicMemory:
    """Ordered interaction log; may temporarily overflow until consolidated."""

    name = "episodic"

    def __init__(self, capacity: int = 100) -> None:
        self.capacity = capacity
        self._records: list[EpisodeRecord] = []

    def add(self, record: EpisodeRecord) -> None:
        self._records.append(record)

    @property
    def overflowing(self) -> bool:
        return len(self._records) > self.capacity

    def records(self) -> list[EpisodeRecord]:
        return list(self._records)

    def keep_latest(self, n: int) -> int:
        """Truncate to the ``n`` most recent records; returns how many were dropped."""
        dropped = max(0, len(self._records) - n)
        if dropped:
            self._records = self._records[dropped:]
        return dropped

    def __len__(self) -> int:
        return len(self._records)


class SemanticMemory:
    """Pattern-key to consolidated value. Append/overwrite only, never shrinks."""

    name = "semantic"

    def __init__(self) -> None:
        self._facts: dict[str, Any] = {}

    def put(self, key: str, value: Any) -> None:
        self._facts[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._facts.get(key, default)

    def items(self) -> Iterator[tuple[str, Any]]:
        return iter(list(self._facts.items()))

    def as_dict(self) -> dict[str, Any]:
        return dict(self._facts)

    def __contains__(self, key: str) -> bool:
        return key in self._facts

    def __len__(self) -> int:
        return len(self._facts)


class ProceduralMemory:
    """Skill-id to binding."""

    name = "procedural"

    def __init__(self) -> None:
        self._skills: dict[str, SkillBinding] = {}

    def bind(self, binding: SkillBinding) -> None:
        self._skills[binding.skill_id] = binding

    def unbind(self, skill_id: str) -> SkillBinding | None:
        return self._skills.pop(skill_id, None)

    def get(self, skill_id: str) -> SkillBinding | None:
        return self._skills.get(skill_id)

    def as_dict(self) -> dict[str, SkillBinding]:
        return dict(self._skills)

    def __len__(self) -> int:
        return len(self._skills)
