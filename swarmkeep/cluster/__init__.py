"""Swarm task coordination: directory, decomposition, market allocation, execution."""

from .allocator import (
    AllocationLedger,
    AllocationResult,
    MarketAllocator,
    select_winner,
    validate_bid,
)
from .context import SharedContext
from .coordinator import ExecutionCoordinator
from .decomposer import TaskDecomposer, validate_parts
from .directory import CapabilityDirectory, match_score
from .liveness import LivenessMonitor
from .swarm import Swarm

__all__ = [
    "AllocationLedger",
    "AllocationResult",
    "CapabilityDirectory",
    "ExecutionCoordinator",
    "LivenessMonitor",
    "MarketAllocator",
    "SharedContext",
    "Swarm",
    "TaskDecomposer",
    "match_score",
    "select_winner",
    "validate_bid",
    "validate_parts",
]
