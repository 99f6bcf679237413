"""ExecutionCoordinator: concurrent execution with liveness monitoring and reassignment."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from ..config import CoordinatorConfig
from ..errors import ExecutionFailureError, StallDetectedError, SwarmError
from ..types import (
    FailureKind,
    Sandbox,
    SubTask,
    SwarmAgent,
    Task,
    TaskOutcome,
    TaskState,
)
from .allocator import Candidates, MarketAllocator, index_candidates
from .context import SharedContext
from .directory import CapabilityDirectory
from .liveness import LivenessMonitor

logger = logging.getLogger(__name__)


@dataclass
class _Attempt:
    ok: bool
    result: Any = None
    kind: FailureKind | None = None
    error: SwarmError | None = None


class ExecutionCoordinator:
    """
    Runs every allocated sub-task of a task concurrently.

    Each execution attempt gets its own LivenessMonitor; the monitor is
    stopped before the sub-task changes state, so no check outlives it. A
    stall or runtime failure excludes the agent for that sub-task and
    re-enters the allocator, up to ``max_reassignments`` times.
    """

    def __init__(
        self,
        allocator: MarketAllocator,
        directory: CapabilityDirectory,
        sandbox: Sandbox,
        config: CoordinatorConfig | None = None,
    ) -> None:
        self._allocator = allocator
        self._directory = directory
        self._sandbox = sandbox
        self.config = config or CoordinatorConfig()
        self._active: dict[str, list[SubTask]] = {}

    @property
    def active_tasks(self) -> list[str]:
        return sorted(self._active)

    async def run(
        self,
        task: Task,
        subtasks: Sequence[SubTask],
        candidates: Candidates,
        context: SharedContext | Mapping[str, Any] | None = None,
    ) -> TaskOutcome:
        agents = index_candidates(candidates)
        shared = context if isinstance(context, SharedContext) else SharedContext(task.id, context)
        self._active[task.id] = list(subtasks)
        task.state = TaskState.EXECUTING
        try:
            results = await asyncio.gather(*(self._drive(s, agents, shared) for s in subtasks))
        finally:
            del self._active[task.id]

        outcome = TaskOutcome(
            task_id=task.id,
            state=TaskState.COMPLETED,
            subtasks=list(subtasks),
            allocations={s.id: self._allocator.ledger.history(s.id) for s in subtasks},
        )
        self._allocator.ledger.release([s.id for s in subtasks])
        for subtask, result in zip(subtasks, results):
            if subtask.state is TaskState.COMPLETED:
                outcome.results[subtask.id] = result
            elif subtask.failure is not None:
                outcome.failures.append(subtask.failure)
        if len(outcome.results) != len(subtasks):
            outcome.state = TaskState.FAILED
        task.state = outcome.state
        logger.info(
            "Task %s %s (%d/%d sub-tasks completed)",
            task.id,
            outcome.state.value,
            len(outcome.results),
            len(subtasks),
        )
        return outcome

    async def _drive(
        self, subtask: SubTask, agents: Mapping[str, SwarmAgent], context: SharedContext
    ) -> Any:
        if subtask.state.is_terminal:
            return None
        excluded: set[str] = set()
        allocation = self._allocator.ledger.current(subtask.id)
        if allocation is None:
            allocation = await self._allocator.allocate_one(subtask, agents, excluded)

        while allocation is not None:
            agent = agents[allocation.agent_id]
            attempt = await self._attempt(subtask, agent, context)
            if attempt.ok:
                subtask.state = TaskState.COMPLETED
                await self._record_outcome(agent.id, True)
                return attempt.result

            await self._record_outcome(agent.id, False)
            if attempt.kind is FailureKind.STALL_DETECTED:
                self._allocator.cool_down(agent.id)
            excluded.add(agent.id)
            self._allocator.ledger.supersede(subtask.id)

            if subtask.reassignments >= self.config.max_reassignments:
                subtask.fail(FailureKind.RETRIES_EXHAUSTED, str(attempt.error), agent.id)
                logger.error(
                    "Sub-task %s failed permanently after %d reassignments: %s",
                    subtask.id,
                    subtask.reassignments,
                    attempt.error,
                )
                return None
            subtask.reassignments += 1
            subtask.state = TaskState.REASSIGNED
            logger.warning(
                "Reassigning %s away from %s (%s), attempt %d",
                subtask.id,
                agent.id,
                attempt.kind.value if attempt.kind else "?",
                subtask.reassignments,
            )
            allocation = await self._allocator.allocate_one(subtask, agents, excluded)
        return None

    async def _record_outcome(self, agent_id: str, success: bool) -> None:
        # an agent that hibernated mid-execution keeps the reputation it was saved with
        if not self._directory.registered(agent_id):
            logger.info("Dropping outcome for %s; no longer in the directory", agent_id)
            return
        await self._directory.update_reputation(agent_id, success)

    async def _attempt(self, subtask: SubTask, agent: SwarmAgent, context: SharedContext) -> _Attempt:
        monitor = LivenessMonitor(
            agent,
            subtask.id,
            interval=self.config.liveness_interval,
            timeout=self.config.liveness_timeout,
            max_missed=self.config.max_missed_checks,
        )
        subtask.state = TaskState.EXECUTING
        execution = asyncio.create_task(self._sandbox.execute(subtask, agent.id, context))
        stall = asyncio.create_task(monitor.stalled.wait())
        monitor.start()
        try:
            done, _ = await asyncio.wait(
                {execution, stall},
                timeout=self.config.execution_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            monitor.stop()
            execution.cancel()
            await asyncio.gather(execution, return_exceptions=True)
            raise
        finally:
            monitor.stop()
            stall.cancel()

        if execution in done:
            exc = (
                asyncio.CancelledError("execution cancelled by sandbox")
                if execution.cancelled()
                else execution.exception()
            )
            if exc is None:
                return _Attempt(ok=True, result=execution.result())
            logger.warning("Execution of %s by %s raised %r", subtask.id, agent.id, exc)
            return _Attempt(
                ok=False,
                kind=FailureKind.EXECUTION_FAILURE,
                error=ExecutionFailureError(subtask.id, agent.id, exc),
            )

        execution.cancel()
        try:
            await execution
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.debug("Cancelled execution of %s raised during teardown", subtask.id, exc_info=True)
        return _Attempt(
            ok=False,
            kind=FailureKind.STALL_DETECTED,
            error=StallDetectedError(subtask.id, agent.id, monitor.missed),
        )
