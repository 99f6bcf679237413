"""
swarmkeep - persistent agents with tiered memory and market-based swarm coordination.
"""

from swarmkeep.cluster import (
    CapabilityDirectory,
    ExecutionCoordinator,
    MarketAllocator,
    SharedContext,
    Swarm,
    TaskDecomposer,
)
from swarmkeep.config import RuntimeConfig
from swarmkeep.errors import SwarmError
from swarmkeep.memory import MemoryStore
from swarmkeep.runtime import (
    AgentRuntime,
    FileStateStore,
    LifecycleManager,
    MemoryStateStore,
    SkillTable,
    StateStore,
)
from swarmkeep.types import (
    Bid,
    InboundMessage,
    MessageType,
    OutboundMessage,
    Proposal,
    SubTask,
    SubTaskDescriptor,
    Task,
    TaskOutcome,
    TaskState,
)

__version__ = "0.1.0"

__all__ = [
    "AgentRuntime",
    "Bid",
    "CapabilityDirectory",
    "ExecutionCoordinator",
    "FileStateStore",
    "InboundMessage",
    "LifecycleManager",
    "MarketAllocator",
    "MemoryStateStore",
    "MemoryStore",
    "MessageType",
    "OutboundMessage",
    "Proposal",
    "RuntimeConfig",
    "SharedContext",
    "SkillTable",
    "StateStore",
    "SubTask",
    "SubTaskDescriptor",
    "Swarm",
    "SwarmError",
    "Task",
    "TaskDecomposer",
    "TaskOutcome",
    "TaskState",
    "__version__",
]
