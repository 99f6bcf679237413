"""AgentRuntime: message-driven entry point for persistent agents.

Routes inbound messages to chat, skill, memory or swarm handling. A message
for a hibernating agent wakes it first; a closed channel hibernates it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from ..cluster import CapabilityDirectory, Swarm
from ..config import RuntimeConfig
from ..errors import AgentNotFoundError, InvalidMessageError, ModelInvocationError, SwarmError
from ..memory import MemoryStore, PromptAssembler
from ..types import (
    InboundMessage,
    LifecycleState,
    MessageType,
    ModelProvider,
    OutboundMessage,
    Sandbox,
    SessionMarker,
    SkillBinding,
    SwarmAgent,
    Task,
)
from .lifecycle import LifecycleManager
from .skills import SkillTable
from .state_store import MemoryStateStore, StateStore

logger = logging.getLogger(__name__)

Handler = Callable[[InboundMessage], Coroutine[Any, Any, dict[str, Any]]]


class AgentRuntime:
    def __init__(
        self,
        lifecycle: LifecycleManager,
        memory: MemoryStore,
        skills: SkillTable,
        model: ModelProvider,
        swarm: Swarm | None = None,
        config: RuntimeConfig | None = None,
        assembler: PromptAssembler | None = None,
    ) -> None:
        self.lifecycle = lifecycle
        self.memory = memory
        self.skills = skills
        self.swarm = swarm
        self.config = config or RuntimeConfig()
        self._model = model
        self._assembler = assembler or PromptAssembler()
        self._members: dict[str, SwarmAgent] = {}
        self._handlers: dict[MessageType, Handler] = {
            MessageType.CHAT: self._chat,
            MessageType.SKILL: self._skill,
            MessageType.MEMORY: self._memory,
            MessageType.SWARM: self._swarm,
        }

    @classmethod
    def create(
        cls,
        model: ModelProvider,
        sandbox: Sandbox | None = None,
        storage: StateStore | None = None,
        config: RuntimeConfig | None = None,
    ) -> AgentRuntime:
        """Wire a runtime with in-process defaults; ``sandbox`` enables swarm messages."""
        config = config or RuntimeConfig()
        storage = storage or MemoryStateStore()
        memory = MemoryStore(config.memory)
        directory = CapabilityDirectory(config.directory)
        swarm = Swarm.create(sandbox, config, directory) if sandbox is not None else None
        return cls(
            lifecycle=LifecycleManager(memory, storage, directory),
            memory=memory,
            skills=SkillTable(storage),
            model=model,
            swarm=swarm,
            config=config,
        )

    # ── swarm membership ──

    def join(self, agent: SwarmAgent) -> None:
        """Make ``agent`` a swarm candidate while its lifecycle state is Active."""
        self._members[agent.id] = agent

    def leave(self, agent_id: str) -> None:
        self._members.pop(agent_id, None)

    def members(self) -> dict[str, SwarmAgent]:
        active = set(self.lifecycle.active_agents())
        return {a: agent for a, agent in self._members.items() if a in active}

    # ── transport hooks ──

    async def handle(self, msg: InboundMessage) -> OutboundMessage:
        reply = OutboundMessage(
            reply_to=msg.id,
            agent_id=msg.agent_id,
            type=msg.type,
            channel_id=msg.channel_id,
        )
        try:
            try:
                kind = MessageType(msg.type)
            except ValueError as e:
                raise InvalidMessageError(msg.id, f"unknown message type {msg.type!r}") from e
            if not isinstance(msg.payload, dict):
                raise InvalidMessageError(msg.id, f"payload must be an object, got {type(msg.payload).__name__}")
            handler = self._handlers[kind]
            if kind is not MessageType.SWARM:
                await self._ensure_active(msg.agent_id)
            reply.payload = await handler(msg)
        except SwarmError as e:
            logger.warning("Message %s for %s failed: %s", msg.id, msg.agent_id, e)
            reply.error = e.to_dict()
        return reply

    async def channel_closed(self, agent_id: str) -> SessionMarker | None:
        return await self.lifecycle.on_channel_closed(agent_id)

    async def _ensure_active(self, agent_id: str) -> None:
        try:
            state = self.lifecycle.state(agent_id)
        except SwarmError:
            state = None
        if state is LifecycleState.ACTIVE:
            return
        # unknown ids may still have a snapshot from an earlier process
        if state is None and not await self.lifecycle.has_snapshot(agent_id):
            raise AgentNotFoundError(agent_id)
        await self.lifecycle.wake(agent_id)

    # ── handlers ──

    async def _chat(self, msg: InboundMessage) -> dict[str, Any]:
        text = msg.payload.get("text")
        if not isinstance(text, str) or not text:
            raise InvalidMessageError(msg.id, "chat payload needs non-empty 'text'")

        prompt = self._assembler.build(
            text,
            await self.memory.working(msg.agent_id),
            await self.memory.recall(msg.agent_id, text, self.config.recall_limit),
            await self.memory.skills(msg.agent_id),
        )
        try:
            response = await asyncio.wait_for(self._model.generate(prompt), self.config.model_timeout)
        except asyncio.TimeoutError as e:
            raise ModelInvocationError(msg.agent_id, f"no reply within {self.config.model_timeout}s", e) from e
        except SwarmError:
            raise
        except Exception as e:
            raise ModelInvocationError(msg.agent_id, str(e), e) from e

        report = await self.memory.record(
            msg.agent_id, text, response, {"channel": msg.channel_id, "message_id": msg.id}
        )
        return {"text": response, "consolidated": report.promoted if report else []}

    async def _skill(self, msg: InboundMessage) -> dict[str, Any]:
        action = msg.payload.get("action", "list")
        agent_id = msg.agent_id
        if action == "bind":
            try:
                binding = SkillBinding.from_dict(msg.payload["skill"])
            except (KeyError, TypeError, ValueError) as e:
                raise InvalidMessageError(msg.id, f"bad skill binding ({e})") from e
            await self.skills.bind(agent_id, binding)
            await self.memory.learn_skill(agent_id, binding)
            return {"bound": binding.skill_id}
        if action == "unbind":
            skill_id = msg.payload.get("skill_id")
            if not isinstance(skill_id, str) or not skill_id:
                raise InvalidMessageError(msg.id, "unbind needs 'skill_id'")
            removed = await self.skills.unbind(agent_id, skill_id)
            forgotten = await self.memory.forget_skill(agent_id, skill_id)
            return {"unbound": skill_id, "removed": removed or forgotten is not None}
        if action == "list":
            return {"skills": [b.to_dict() for b in await self.memory.skills(agent_id)]}
        raise InvalidMessageError(msg.id, f"unknown skill action {action!r}")

    async def _memory(self, msg: InboundMessage) -> dict[str, Any]:
        action = msg.payload.get("action", "recall")
        agent_id = msg.agent_id
        if action == "recall":
            try:
                limit = int(msg.payload.get("limit", self.config.recall_limit))
            except (TypeError, ValueError) as e:
                raise InvalidMessageError(msg.id, f"bad recall limit ({e})") from e
            if limit < 0:
                raise InvalidMessageError(msg.id, "recall limit must be >= 0")
            facts = await self.memory.recall(agent_id, str(msg.payload.get("query", "")), limit)
            return {"facts": [{"key": k, "value": v} for k, v in facts]}
        if action == "remember":
            key = msg.payload.get("key")
            if not isinstance(key, str) or not key or "value" not in msg.payload:
                raise InvalidMessageError(msg.id, "remember needs 'key' and 'value'")
            await self.memory.remember(agent_id, key, msg.payload["value"])
            return {"remembered": key}
        if action == "consolidate":
            report = await self.memory.consolidate(agent_id)
            return {"promoted": report.promoted, "trimmed": report.trimmed}
        if action == "snapshot":
            snapshot = await self.memory.serialize(agent_id)
            return {"snapshot": snapshot.to_dict(), "digest": snapshot.digest()}
        raise InvalidMessageError(msg.id, f"unknown memory action {action!r}")

    async def _swarm(self, msg: InboundMessage) -> dict[str, Any]:
        if self.swarm is None:
            raise InvalidMessageError(msg.id, "no swarm configured")
        try:
            task = Task.from_dict(msg.payload["task"])
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise InvalidMessageError(msg.id, f"bad task ({e})") from e
        context = msg.payload.get("context")
        if context is not None and not isinstance(context, dict):
            raise InvalidMessageError(msg.id, "swarm context must be an object")
        outcome = await self.swarm.run(task, self.members(), context)
        return outcome.to_dict()
