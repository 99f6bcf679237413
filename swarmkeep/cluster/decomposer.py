"""TaskDecomposer: two-phase propose/reconcile decomposition."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Sequence

from ..config import DecomposerConfig
from ..errors import DecompositionInvalidError
from ..types import Proposal, SubTask, SubTaskDescriptor, SwarmAgent, Task, TaskState
from .directory import CapabilityDirectory

logger = logging.getLogger(__name__)

Partition = frozenset[frozenset[str]]


def validate_parts(task: Task, parts: Sequence[SubTaskDescriptor]) -> None:
    """Parts must cover every unit of the task exactly once and invent nothing."""
    if not parts:
        raise DecompositionInvalidError(task.id, "no sub-tasks")
    universe = set(task.units)
    seen: set[str] = set()
    for part in parts:
        if not part.units:
            raise DecompositionInvalidError(task.id, "empty sub-task")
        units = set(part.units)
        if len(units) != len(part.units):
            raise DecompositionInvalidError(task.id, "sub-task repeats a unit")
        unknown = units - universe
        if unknown:
            raise DecompositionInvalidError(task.id, f"unknown units {sorted(unknown)}")
        overlap = units & seen
        if overlap:
            raise DecompositionInvalidError(task.id, f"units assigned twice {sorted(overlap)}")
        seen |= units
    missing = universe - seen
    if missing:
        raise DecompositionInvalidError(task.id, f"units not covered {sorted(missing)}")


class TaskDecomposer:
    """
    Phase 1 gathers independent proposals (each under its own deadline; a
    timeout or failure counts as no proposal). Phase 2 groups proposals by the
    partition of work units they induce, picks the group backed by a strict
    majority of proposers, and otherwise falls back to the proposal of the
    highest-reputation proposer. Both phases are bounded, so reconciliation
    always terminates. Any invalid outcome degrades to the single-task case.
    """

    def __init__(
        self,
        directory: CapabilityDirectory,
        config: DecomposerConfig | None = None,
    ) -> None:
        self._directory = directory
        self.config = config or DecomposerConfig()

    async def decompose(self, task: Task, proposers: Sequence[SwarmAgent] = ()) -> list[SubTask]:
        if task.complexity < self.config.complexity_threshold:
            return [SubTask.wrap(task)]

        proposals = await self.gather_proposals(task, proposers)
        try:
            parts = self.reconcile(task, proposals)
            validate_parts(task, parts)
        except DecompositionInvalidError as e:
            logger.warning("Falling back to single sub-task for %s: %s", task.id, e.reason)
            task.state = TaskState.DECOMPOSED
            return [SubTask.wrap(task)]

        task.state = TaskState.DECOMPOSED
        if len(parts) == 1 and set(parts[0].units) == set(task.units):
            return [SubTask.wrap(task)]
        subtasks = [
            SubTask(
                id=f"{task.id}.{i}",
                parent_id=task.id,
                description=part.description,
                units=list(part.units),
                requirements=dict(part.requirements or task.requirements),
            )
            for i, part in enumerate(parts, start=1)
        ]
        logger.info("Decomposed %s into %d sub-tasks", task.id, len(subtasks))
        return subtasks

    async def gather_proposals(self, task: Task, proposers: Sequence[SwarmAgent]) -> list[Proposal]:
        async def ask(agent: SwarmAgent) -> Proposal | None:
            try:
                return await asyncio.wait_for(agent.propose(task), self.config.proposal_timeout)
            except asyncio.TimeoutError:
                logger.warning("Proposal from %s timed out", agent.id)
            except Exception:
                logger.warning("Proposal from %s failed", agent.id, exc_info=True)
            return None

        answers = await asyncio.gather(*(ask(a) for a in proposers))
        proposals = []
        for agent, proposal in zip(proposers, answers):
            if proposal is None:
                continue
            if proposal.proposer_id != agent.id:
                proposal = Proposal(proposer_id=agent.id, kind=proposal.kind, parts=proposal.parts)
            proposals.append(proposal)
        return proposals

    def reconcile(self, task: Task, proposals: Sequence[Proposal]) -> list[SubTaskDescriptor]:
        usable: list[tuple[Proposal, list[SubTaskDescriptor]]] = []
        for p in proposals:
            parts = self._parts(task, p)
            try:
                validate_parts(task, parts)
            except DecompositionInvalidError as e:
                logger.debug("Discarding proposal from %s: %s", p.proposer_id, e.reason)
                continue
            if len(parts) > self.config.max_subtasks:
                logger.debug("Discarding proposal from %s: too many parts", p.proposer_id)
                continue
            usable.append((p, parts))
        if not usable:
            raise DecompositionInvalidError(task.id, "no valid proposals")

        groups: dict[Partition, list[tuple[Proposal, list[SubTaskDescriptor]]]] = defaultdict(list)
        for p, parts in usable:
            groups[p.partition(task)].append((p, parts))

        majority = [g for g in groups.values() if len(g) * 2 > len(usable)]
        if majority:
            chosen = majority[0]
            logger.debug("Majority of %d/%d proposers agree on %s", len(chosen), len(usable), task.id)
        else:
            best = min(
                usable,
                key=lambda pp: (-self._directory.reputation(pp[0].proposer_id), pp[0].proposer_id),
            )
            chosen = [best]
            logger.debug("No majority for %s; using proposal of %s", task.id, best[0].proposer_id)
        return self._merge(task, chosen)

    @staticmethod
    def _parts(task: Task, proposal: Proposal) -> list[SubTaskDescriptor]:
        if proposal.kind == "atomic":
            return [SubTaskDescriptor(task.description, tuple(task.units), dict(task.requirements))]
        return list(proposal.parts)

    @staticmethod
    def _merge(
        task: Task, group: list[tuple[Proposal, list[SubTaskDescriptor]]]
    ) -> list[SubTaskDescriptor]:
        """Merge structurally identical proposals part by part, in task unit order."""
        order = {u: i for i, u in enumerate(task.units)}
        merged: dict[frozenset[str], SubTaskDescriptor] = {}
        for _, parts in sorted(group, key=lambda pp: pp[0].proposer_id):
            for part in parts:
                key = frozenset(part.units)
                prior = merged.get(key)
                if prior is None:
                    units = tuple(sorted(part.units, key=order.__getitem__))
                    merged[key] = SubTaskDescriptor(part.description, units, dict(part.requirements))
                    continue
                reqs = dict(prior.requirements)
                for cap, imp in part.requirements.items():
                    reqs[cap] = max(imp, reqs.get(cap, 0.0))
                merged[key] = SubTaskDescriptor(prior.description, prior.units, reqs)
        return sorted(merged.values(), key=lambda d: order[d.units[0]])
