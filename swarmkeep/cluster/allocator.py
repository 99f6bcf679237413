"""MarketAllocator: per-sub-task sealed-bid auction.

Every sub-task is auctioned on its own: there is no global optimization
across sub-tasks, so one agent may win several sub-tasks of the same task.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections.abc import Callable, Collection, Mapping, Sequence
from dataclasses import dataclass, field, replace

from ..config import AllocatorConfig
from ..errors import InvalidBidCostError, InvalidBidError, NoCapableAgentError
from ..types import Allocation, Bid, FailureKind, SubTask, SwarmAgent, TaskState
from .directory import CapabilityDirectory

logger = logging.getLogger(__name__)

Candidates = Mapping[str, SwarmAgent] | Sequence[SwarmAgent]


def validate_bid(bid: Bid, subtask_id: str, agent_id: str) -> Bid:
    if bid.subtask_id != subtask_id or bid.agent_id != agent_id:
        raise InvalidBidError(agent_id, subtask_id, f"bid addressed to {bid.agent_id}/{bid.subtask_id}")
    if math.isnan(bid.cost) or bid.cost <= 0:
        raise InvalidBidCostError(agent_id, subtask_id, bid.cost)
    if math.isnan(bid.confidence) or not 0.0 <= bid.confidence <= 1.0:
        raise InvalidBidError(agent_id, subtask_id, f"confidence {bid.confidence} outside [0, 1]")
    return bid


def select_winner(bids: Sequence[Bid], reputations: Mapping[str, float]) -> Bid | None:
    """Highest (confidence × reputation) / cost; ties go to the cheaper bid, then agent id."""
    for bid in bids:
        if math.isnan(bid.cost) or bid.cost <= 0:
            raise InvalidBidCostError(bid.agent_id, bid.subtask_id, bid.cost)
    if not bids:
        return None
    return min(bids, key=lambda b: (-b.score(reputations[b.agent_id]), b.cost, b.agent_id))


class AllocationLedger:
    """Allocation history per sub-task; only the latest entry is live."""

    def __init__(self) -> None:
        self._history: dict[str, list[Allocation]] = {}

    def record(self, allocation: Allocation) -> Allocation:
        self.supersede(allocation.subtask_id)
        self._history.setdefault(allocation.subtask_id, []).append(allocation)
        return allocation

    def current(self, subtask_id: str) -> Allocation | None:
        history = self._history.get(subtask_id)
        if not history or history[-1].superseded:
            return None
        return history[-1]

    def supersede(self, subtask_id: str) -> None:
        history = self._history.get(subtask_id)
        if history and not history[-1].superseded:
            history[-1] = replace(history[-1], superseded=True)

    def history(self, subtask_id: str) -> list[Allocation]:
        return list(self._history.get(subtask_id, []))

    def release(self, subtask_ids: Collection[str]) -> None:
        for sid in subtask_ids:
            self._history.pop(sid, None)

    def __len__(self) -> int:
        return len(self._history)


@dataclass
class AllocationResult:
    allocations: dict[str, Allocation] = field(default_factory=dict)
    failed: list[SubTask] = field(default_factory=list)


def index_candidates(candidates: Candidates) -> dict[str, SwarmAgent]:
    if isinstance(candidates, Mapping):
        return dict(candidates)
    return {agent.id: agent for agent in candidates}


class MarketAllocator:
    def __init__(
        self,
        directory: CapabilityDirectory,
        config: AllocatorConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._directory = directory
        self.config = config or AllocatorConfig()
        self._clock = clock
        self._cooldowns: dict[str, float] = {}
        self.ledger = AllocationLedger()

    # ── cooldown ──

    def cool_down(self, agent_id: str, seconds: float | None = None) -> None:
        duration = self.config.stall_cooldown if seconds is None else seconds
        self._cooldowns[agent_id] = self._clock() + duration
        logger.info("Agent %s excluded from bidding for %.1fs", agent_id, duration)

    def cooling(self, agent_id: str) -> bool:
        until = self._cooldowns.get(agent_id)
        if until is None:
            return False
        if self._clock() >= until:
            del self._cooldowns[agent_id]
            return False
        return True

    # ── auction ──

    async def allocate(
        self,
        subtasks: Sequence[SubTask],
        candidates: Candidates,
        exclude: Collection[str] = (),
    ) -> AllocationResult:
        agents = index_candidates(candidates)
        won = await asyncio.gather(*(self.allocate_one(s, agents, exclude) for s in subtasks))
        result = AllocationResult()
        for subtask, allocation in zip(subtasks, won):
            if allocation is None:
                result.failed.append(subtask)
            else:
                result.allocations[subtask.id] = allocation
        return result

    def eligible(
        self, subtask: SubTask, agents: Mapping[str, SwarmAgent], exclude: Collection[str] = ()
    ) -> list[str]:
        floor = self.config.bid_reputation_floor
        return [
            m.agent_id
            for m in self._directory.find(subtask.requirements, exclude)
            if m.agent_id in agents and m.reputation > floor and not self.cooling(m.agent_id)
        ]

    async def allocate_one(
        self,
        subtask: SubTask,
        candidates: Candidates,
        exclude: Collection[str] = (),
    ) -> Allocation | None:
        agents = index_candidates(candidates)
        bidders = self.eligible(subtask, agents, exclude)
        bids = await self.solicit(subtask, [agents[a] for a in bidders])
        reputations = {b.agent_id: self._directory.reputation(b.agent_id) for b in bids}
        winner = select_winner(bids, reputations)
        if winner is None:
            subtask.fail(FailureKind.NO_CAPABLE_AGENT, str(NoCapableAgentError(subtask.id)))
            logger.warning("No capable agent bid on %s (%d eligible)", subtask.id, len(bidders))
            return None

        allocation = self.ledger.record(
            Allocation(
                subtask_id=subtask.id,
                agent_id=winner.agent_id,
                cost=winner.cost,
                confidence=winner.confidence,
                reputation=reputations[winner.agent_id],
                round=subtask.reassignments,
            )
        )
        subtask.assigned_agent = winner.agent_id
        subtask.state = TaskState.ALLOCATED
        logger.info(
            "Allocated %s to %s (score=%.3f, %d bids)",
            subtask.id,
            winner.agent_id,
            allocation.score,
            len(bids),
        )
        return allocation

    async def solicit(self, subtask: SubTask, agents: Sequence[SwarmAgent]) -> list[Bid]:
        """Collect valid bids; late, failed and invalid bids count as no bid."""

        async def ask(agent: SwarmAgent) -> Bid | None:
            try:
                bid = await asyncio.wait_for(agent.bid(subtask), self.config.bid_timeout)
            except asyncio.TimeoutError:
                logger.debug("Bid from %s on %s timed out", agent.id, subtask.id)
                return None
            except Exception:
                logger.warning("Bid from %s on %s failed", agent.id, subtask.id, exc_info=True)
                return None
            if bid is None:
                return None
            try:
                return validate_bid(bid, subtask.id, agent.id)
            except InvalidBidError as e:
                logger.warning("%s", e)
                await self._directory.update_reputation(agent.id, False)
                return None

        answers = await asyncio.gather(*(ask(a) for a in agents))
        return [b for b in answers if b is not None]
