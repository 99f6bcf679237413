"""Per-agent tiered memory with single-writer access per agent."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from ..config import MemoryConfig
from ..errors import AgentNotFoundError, CorruptSnapshotError
from ..types import (
    ConsolidationReport,
    EpisodeRecord,
    Interaction,
    MemorySnapshot,
    SkillBinding,
)
from .consolidation import PatternConsolidator, tokenize
from .tiers import EpisodicMemory, ProceduralMemory, SemanticMemory, WorkingMemory

logger = logging.getLogger(__name__)


class AgentMemory:
    """All four tiers of one agent. Not synchronized; MemoryStore owns access."""

    def __init__(self, agent_id: str, config: MemoryConfig) -> None:
        self.agent_id = agent_id
        self.working = WorkingMemory(config.working_capacity)
        self.episodic = EpisodicMemory(config.episodic_capacity)
        self.semantic = SemanticMemory()
        self.procedural = ProceduralMemory()

    def snapshot(self) -> MemorySnapshot:
        return MemorySnapshot(
            agent_id=self.agent_id,
            working=[Interaction(**i.to_dict()) for i in self.working.items()],
            episodic=[EpisodeRecord(**e.to_dict()) for e in self.episodic.records()],
            semantic=json.loads(json.dumps(self.semantic.as_dict())),
            procedural={k: SkillBinding.from_dict(b.to_dict()) for k, b in self.procedural.as_dict().items()},
        )

    @classmethod
    def from_snapshot(cls, snapshot: MemorySnapshot, config: MemoryConfig) -> AgentMemory:
        if len(snapshot.working) > config.working_capacity:
            raise CorruptSnapshotError(
                snapshot.agent_id,
                f"working tier holds {len(snapshot.working)} > {config.working_capacity}",
            )
        # episodic may legitimately overflow until the next consolidation
        memory = cls(snapshot.agent_id, config)
        for item in snapshot.working:
            memory.working.add(item)
        for record in snapshot.episodic:
            memory.episodic.add(record)
        for key, value in snapshot.semantic.items():
            memory.semantic.put(key, value)
        for binding in snapshot.procedural.values():
            memory.procedural.bind(binding)
        return memory


class MemoryStore:
    """
    Owns every agent's memory.

    Operations on one agent are serialized through a per-agent asyncio.Lock;
    different agents never contend. ``exclusive`` hands the lock to callers
    that must perform a multi-step transition (hibernate/wake) atomically.
    """

    def __init__(
        self,
        config: MemoryConfig | None = None,
        consolidator: PatternConsolidator | None = None,
    ) -> None:
        self.config = config or MemoryConfig()
        self._consolidator = consolidator or PatternConsolidator(
            similarity=self.config.pattern_similarity,
            min_support=self.config.min_pattern_support,
        )
        self._memories: dict[str, AgentMemory] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def _lock(self, agent_id: str) -> AsyncIterator[None]:
        """Hold the agent's lock; the lock is dropped once memory is gone and nobody waits."""
        lock = self._locks.get(agent_id)
        if lock is None:
            lock = self._locks[agent_id] = asyncio.Lock()
        self._holders[agent_id] = self._holders.get(agent_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[agent_id] -= 1
            if not self._holders[agent_id]:
                del self._holders[agent_id]
                if agent_id not in self._memories:
                    self._locks.pop(agent_id, None)

    def _get(self, agent_id: str) -> AgentMemory:
        memory = self._memories.get(agent_id)
        if memory is None:
            raise AgentNotFoundError(agent_id, "no resident memory")
        return memory

    # ── residency ──

    def has(self, agent_id: str) -> bool:
        return agent_id in self._memories

    @property
    def agents(self) -> list[str]:
        return sorted(self._memories)

    async def create(self, agent_id: str) -> AgentMemory:
        async with self._lock(agent_id):
            memory = self._memories.get(agent_id)
            if memory is None:
                memory = self._memories[agent_id] = AgentMemory(agent_id, self.config)
            return memory

    def discard(self, agent_id: str) -> None:
        """Drop resident memory. Callers must hold ``exclusive(agent_id)``."""
        self._memories.pop(agent_id, None)

    @asynccontextmanager
    async def exclusive(self, agent_id: str, *, require: bool = True) -> AsyncIterator[AgentMemory | None]:
        async with self._lock(agent_id):
            memory = self._memories.get(agent_id)
            if memory is None and require:
                raise AgentNotFoundError(agent_id, "no resident memory")
            yield memory

    # ── interaction ──

    async def append(self, agent_id: str, record: Interaction) -> Interaction | None:
        """Add a perception/response pair to working memory; returns the evicted pair."""
        async with self._lock(agent_id):
            evicted = self._get(agent_id).working.add(record)
        logger.debug("Working memory append for %s (evicted=%s)", agent_id, evicted is not None)
        return evicted

    async def record(
        self,
        agent_id: str,
        perception: str,
        response: str,
        metadata: dict[str, Any] | None = None,
    ) -> ConsolidationReport | None:
        """Log a full interaction into working and episodic memory."""
        async with self._lock(agent_id):
            memory = self._get(agent_id)
            interaction = Interaction(perception=perception, response=response)
            memory.working.add(interaction)
            memory.episodic.add(
                EpisodeRecord(
                    input=perception,
                    output=response,
                    timestamp=interaction.timestamp,
                    metadata=dict(metadata or {}),
                )
            )
            if self.config.auto_consolidate and memory.episodic.overflowing:
                return self._consolidate(memory)
        return None

    async def consolidate(self, agent_id: str) -> ConsolidationReport:
        async with self._lock(agent_id):
            return self._consolidate(self._get(agent_id))

    def _consolidate(self, memory: AgentMemory) -> ConsolidationReport:
        report = ConsolidationReport(agent_id=memory.agent_id)
        if not memory.episodic.overflowing:
            return report
        patterns = self._consolidator.extract(memory.episodic.records(), memory.semantic.as_dict())
        for key, value in patterns.items():
            memory.semantic.put(key, value)
        report.promoted = sorted(patterns)
        report.trimmed = memory.episodic.keep_latest(self.config.retained_episodes)
        logger.info(
            "Consolidated %s: %d patterns promoted, %d episodes trimmed",
            memory.agent_id,
            len(report.promoted),
            report.trimmed,
        )
        return report

    # ── semantic / procedural ──

    async def remember(self, agent_id: str, key: str, value: Any) -> None:
        async with self._lock(agent_id):
            self._get(agent_id).semantic.put(key, value)

    async def recall(self, agent_id: str, query: str = "", limit: int = 5) -> list[tuple[str, Any]]:
        async with self._lock(agent_id):
            facts = list(self._get(agent_id).semantic.items())
        if limit <= 0:
            return []
        if not query:
            return facts[-limit:][::-1]
        q_terms = set(tokenize(query))
        scored = []
        for key, value in facts:
            hits = len(q_terms & set(tokenize(f"{key} {value}")))
            if hits:
                scored.append((hits, key, value))
        scored.sort(key=lambda s: (-s[0], s[1]))
        return [(k, v) for _, k, v in scored[:limit]]

    async def working(self, agent_id: str) -> list[Interaction]:
        async with self._lock(agent_id):
            return self._get(agent_id).working.items()

    async def skills(self, agent_id: str) -> list[SkillBinding]:
        async with self._lock(agent_id):
            bindings = self._get(agent_id).procedural.as_dict()
        return [bindings[k] for k in sorted(bindings)]

    async def learn_skill(self, agent_id: str, binding: SkillBinding) -> None:
        async with self._lock(agent_id):
            self._get(agent_id).procedural.bind(binding)

    async def forget_skill(self, agent_id: str, skill_id: str) -> SkillBinding | None:
        async with self._lock(agent_id):
            return self._get(agent_id).procedural.unbind(skill_id)

    # ── durability ──

    async def serialize(self, agent_id: str) -> MemorySnapshot:
        async with self._lock(agent_id):
            return self._get(agent_id).snapshot()

    def deserialize(self, snapshot: MemorySnapshot | dict[str, Any]) -> AgentMemory:
        if not isinstance(snapshot, MemorySnapshot):
            snapshot = MemorySnapshot.from_dict(snapshot)
        return AgentMemory.from_snapshot(snapshot, self.config)

    def install(self, memory: AgentMemory) -> None:
        """Make ``memory`` resident. Callers must hold ``exclusive(memory.agent_id)``."""
        self._memories[memory.agent_id] = memory
