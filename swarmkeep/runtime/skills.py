"""SkillTable: (agent id, skill id) to binding, persisted as skill configuration records."""

from __future__ import annotations

import logging

from ..types import SkillBinding
from .state_store import StateStore

logger = logging.getLogger(__name__)


class SkillTable:
    KEY_PREFIX = "skill"

    def __init__(self, storage: StateStore) -> None:
        self._storage = storage
        self._bindings: dict[tuple[str, str], SkillBinding] = {}

    def _key(self, agent_id: str, skill_id: str) -> str:
        return f"{self.KEY_PREFIX}:{agent_id}:{skill_id}"

    async def bind(self, agent_id: str, binding: SkillBinding) -> None:
        await self._storage.save(self._key(agent_id, binding.skill_id), binding.to_dict())
        self._bindings[(agent_id, binding.skill_id)] = binding
        logger.debug("Bound skill %s to %s", binding.skill_id, agent_id)

    async def unbind(self, agent_id: str, skill_id: str) -> bool:
        self._bindings.pop((agent_id, skill_id), None)
        return await self._storage.delete(self._key(agent_id, skill_id))

    def get(self, agent_id: str, skill_id: str) -> SkillBinding | None:
        return self._bindings.get((agent_id, skill_id))

    def for_agent(self, agent_id: str) -> list[SkillBinding]:
        return [b for (a, _), b in sorted(self._bindings.items()) if a == agent_id]

    async def load(self, agent_id: str) -> list[SkillBinding]:
        """Reload an agent's bindings from storage (e.g. after a restart)."""
        prefix = f"{self.KEY_PREFIX}:{agent_id}:"
        loaded = []
        for key in await self._storage.list_keys(prefix):
            data = await self._storage.get(key)
            if data is None:
                continue
            binding = SkillBinding.from_dict(data)
            self._bindings[(agent_id, binding.skill_id)] = binding
            loaded.append(binding)
        return loaded
