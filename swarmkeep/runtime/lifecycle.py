"""Agent lifecycle: Active, Hibernating, Terminated."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import replace
from typing import Any

from ..cluster.directory import CapabilityDirectory
from ..errors import (
    AgentAlreadyActiveError,
    AgentNotFoundError,
    CorruptSnapshotError,
    InvalidTransitionError,
    ReputationUnderflowError,
    SwarmError,
)
from ..memory import MemoryStore
from ..types import AgentProfile, LifecycleState, RestoredAgent, SessionMarker
from .state_store import StateStore

logger = logging.getLogger(__name__)


class LifecycleManager:
    """
    Owns agent identity and the hibernate/wake transitions.

    Transitions take the agent's memory lock for their whole duration, so an
    interaction update can never interleave with a hibernate or a wake.
    """

    KEY_PREFIX = "agent"

    def __init__(
        self,
        memory: MemoryStore,
        storage: StateStore,
        directory: CapabilityDirectory,
    ) -> None:
        self._memory = memory
        self._storage = storage
        self._directory = directory
        self._profiles: dict[str, AgentProfile] = {}

    def _key(self, agent_id: str) -> str:
        return f"{self.KEY_PREFIX}:{agent_id}:snapshot"

    # ── queries ──

    def state(self, agent_id: str) -> LifecycleState:
        profile = self._profiles.get(agent_id)
        if profile is None:
            raise AgentNotFoundError(agent_id)
        return profile.state

    def profile(self, agent_id: str) -> AgentProfile:
        profile = self._profiles.get(agent_id)
        if profile is None:
            raise AgentNotFoundError(agent_id)
        if profile.state is LifecycleState.ACTIVE:
            return replace(
                profile,
                capabilities=self._directory.capabilities(agent_id),
                reputation=self._directory.reputation(agent_id),
                preferences=dict(profile.preferences),
            )
        return replace(profile, preferences=dict(profile.preferences))

    def active_agents(self) -> list[str]:
        return sorted(a for a, p in self._profiles.items() if p.state is LifecycleState.ACTIVE)

    async def has_snapshot(self, agent_id: str) -> bool:
        return await self._storage.get(self._key(agent_id)) is not None

    # ── transitions ──

    async def register(
        self,
        agent_id: str,
        capabilities: dict[str, float] | None = None,
        preferences: dict[str, Any] | None = None,
        reputation: float | None = None,
    ) -> AgentProfile:
        """Spawn a new Active agent with empty memory."""
        existing = self._profiles.get(agent_id)
        if existing is not None:
            if existing.state is LifecycleState.ACTIVE:
                raise AgentAlreadyActiveError(agent_id)
            raise InvalidTransitionError(agent_id, existing.state.value, "registered")
        if await self.has_snapshot(agent_id):
            raise InvalidTransitionError(agent_id, LifecycleState.HIBERNATING.value, "registered")

        self._directory.register(agent_id, capabilities or {}, reputation)
        await self._memory.create(agent_id)
        profile = AgentProfile(
            id=agent_id,
            capabilities=dict(capabilities or {}),
            reputation=self._directory.reputation(agent_id),
            preferences=dict(preferences or {}),
        )
        self._profiles[agent_id] = profile
        logger.info("Agent %s registered", agent_id)
        return self.profile(agent_id)

    async def hibernate(self, agent_id: str) -> SessionMarker:
        """Persist memory + metadata, release resident state, return a session marker."""
        async with self._memory.exclusive(agent_id, require=False) as memory:
            profile = self._profiles.get(agent_id)
            if profile is None:
                raise AgentNotFoundError(agent_id)
            if profile.state is not LifecycleState.ACTIVE:
                raise InvalidTransitionError(agent_id, profile.state.value, "hibernating")
            if memory is None:
                raise AgentNotFoundError(agent_id, "no resident memory")

            snapshot = memory.snapshot()
            marker = SessionMarker(
                session_id=uuid.uuid4().hex,
                agent_id=agent_id,
                hibernated_at=time.time(),
                digest=snapshot.digest(),
            )
            metadata = replace(
                profile,
                capabilities=self._directory.capabilities(agent_id),
                reputation=self._directory.reputation(agent_id),
                state=LifecycleState.HIBERNATING,
            )
            await self._storage.save(
                self._key(agent_id),
                {
                    "agent": metadata.to_dict(),
                    "memory": snapshot.to_dict(),
                    "session": marker.to_dict(),
                },
            )
            self._memory.discard(agent_id)
            self._directory.unregister(agent_id)
            self._profiles[agent_id] = metadata
        logger.info("Agent %s hibernated (session %s)", agent_id, marker.session_id)
        return marker

    async def wake(self, agent_id: str) -> RestoredAgent:
        """Restore a hibernated agent. Raises AgentNotFoundError without a snapshot."""
        async with self._memory.exclusive(agent_id, require=False) as resident:
            profile = self._profiles.get(agent_id)
            if resident is not None or (profile and profile.state is LifecycleState.ACTIVE):
                raise AgentAlreadyActiveError(agent_id)
            if profile is not None and profile.state is LifecycleState.TERMINATED:
                raise InvalidTransitionError(agent_id, profile.state.value, "active")

            try:
                record = await self._storage.get(self._key(agent_id))
            except ValueError as e:
                raise CorruptSnapshotError(agent_id, "unreadable record", e) from e
            if record is None:
                raise AgentNotFoundError(agent_id, "no hibernation snapshot")
            if not isinstance(record, dict) or not {"agent", "memory", "session"} <= record.keys():
                raise CorruptSnapshotError(agent_id, "incomplete hibernation record")

            memory = self._memory.deserialize(record["memory"])
            try:
                marker = SessionMarker.from_dict(record["session"])
                restored = AgentProfile.from_dict(record["agent"])
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                raise CorruptSnapshotError(agent_id, f"malformed metadata ({e})", e) from e
            if memory.agent_id != agent_id or restored.id != agent_id:
                raise CorruptSnapshotError(agent_id, "snapshot belongs to another agent")
            if memory.snapshot().digest() != marker.digest:
                raise CorruptSnapshotError(agent_id, "digest mismatch")

            try:
                self._directory.register(agent_id, restored.capabilities, restored.reputation)
            except (ValueError, ReputationUnderflowError) as e:
                raise CorruptSnapshotError(agent_id, f"invalid stored profile ({e})", e) from e
            self._memory.install(memory)
            restored.state = LifecycleState.ACTIVE
            self._profiles[agent_id] = restored
            await self._storage.delete(self._key(agent_id))
        logger.info("Agent %s woke from session %s", agent_id, marker.session_id)
        return RestoredAgent(profile=self.profile(agent_id), marker=marker)

    async def terminate(self, agent_id: str) -> None:
        async with self._memory.exclusive(agent_id, require=False) as memory:
            profile = self._profiles.get(agent_id)
            if profile is None and memory is None and not await self.has_snapshot(agent_id):
                raise AgentNotFoundError(agent_id)
            if profile is not None and profile.state is LifecycleState.TERMINATED:
                raise InvalidTransitionError(agent_id, profile.state.value, "terminated")
            self._memory.discard(agent_id)
            await self._storage.delete(self._key(agent_id))
            self._directory.unregister(agent_id)
            if profile is None:
                profile = AgentProfile(id=agent_id)
            profile.state = LifecycleState.TERMINATED
            self._profiles[agent_id] = profile
        logger.info("Agent %s terminated", agent_id)

    async def on_channel_closed(self, agent_id: str) -> SessionMarker | None:
        """Transport disconnect: hibernate an Active agent, ignore anything else."""
        profile = self._profiles.get(agent_id)
        if profile is None or profile.state is not LifecycleState.ACTIVE:
            logger.debug("Channel closed for %s in state %s; nothing to do", agent_id, profile and profile.state)
            return None
        try:
            return await self.hibernate(agent_id)
        except InvalidTransitionError:
            # lost a race with another transition
            return None
        except SwarmError:
            logger.warning("Auto-hibernate of %s failed", agent_id, exc_info=True)
            raise
