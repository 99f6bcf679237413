"""Boundary contracts for collaborators implemented outside the core."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

from .task import Bid, Proposal, SubTask, Task


class LivenessSignal(StrEnum):
    ALIVE = "alive"
    MISSED = "missed"
    STALLED = "stalled"


@runtime_checkable
class ModelProvider(Protocol):
    async def generate(self, prompt: str) -> str: ...


@runtime_checkable
class Sandbox(Protocol):
    async def execute(self, subtask: SubTask, agent_id: str, context: Mapping[str, Any]) -> Any: ...


@runtime_checkable
class SwarmAgent(Protocol):
    """The swarm-facing side of a live agent: proposes, bids and answers liveness probes."""

    id: str

    async def propose(self, task: Task) -> Proposal | None: ...
    async def bid(self, subtask: SubTask) -> Bid | None: ...
    async def heartbeat(self, subtask_id: str) -> LivenessSignal: ...
