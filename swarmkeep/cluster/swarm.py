"""Swarm: decompose, allocate, execute pipeline for one task."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from ..config import RuntimeConfig
from ..types import Sandbox, Task, TaskOutcome, TaskState
from .allocator import Candidates, MarketAllocator, index_candidates
from .context import SharedContext
from .coordinator import ExecutionCoordinator
from .decomposer import TaskDecomposer
from .directory import CapabilityDirectory

logger = logging.getLogger(__name__)


class Swarm:
    def __init__(
        self,
        directory: CapabilityDirectory,
        decomposer: TaskDecomposer,
        allocator: MarketAllocator,
        coordinator: ExecutionCoordinator,
    ) -> None:
        self.directory = directory
        self.decomposer = decomposer
        self.allocator = allocator
        self.coordinator = coordinator

    @classmethod
    def create(
        cls,
        sandbox: Sandbox,
        config: RuntimeConfig | None = None,
        directory: CapabilityDirectory | None = None,
    ) -> Swarm:
        config = config or RuntimeConfig()
        directory = directory or CapabilityDirectory(config.directory)
        allocator = MarketAllocator(directory, config.allocator)
        return cls(
            directory=directory,
            decomposer=TaskDecomposer(directory, config.decomposer),
            allocator=allocator,
            coordinator=ExecutionCoordinator(allocator, directory, sandbox, config.coordinator),
        )

    async def run(
        self,
        task: Task,
        agents: Candidates,
        context: Mapping[str, Any] | None = None,
    ) -> TaskOutcome:
        pool = index_candidates(agents)
        subtasks = await self.decomposer.decompose(task, list(pool.values()))
        allocation = await self.allocator.allocate(subtasks, pool)
        task.state = TaskState.ALLOCATED
        logger.info(
            "Task %s: %d sub-tasks, %d allocated, %d unallocated",
            task.id,
            len(subtasks),
            len(allocation.allocations),
            len(allocation.failed),
        )
        return await self.coordinator.run(task, subtasks, pool, SharedContext(task.id, context))
