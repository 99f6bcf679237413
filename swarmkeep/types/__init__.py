"""Core data types."""

from .agent import (
    AgentProfile,
    AuthorizationResult,
    AutonomyGrant,
    CapabilityMatch,
    DiscoveryMode,
    LifecycleState,
    RestoredAgent,
    SessionMarker,
)
from .collaborators import LivenessSignal, ModelProvider, Sandbox, SwarmAgent
from .memory import (
    ConsolidationReport,
    EpisodeRecord,
    Interaction,
    MemorySnapshot,
    SkillBinding,
)
from .messages import InboundMessage, MessageType, OutboundMessage
from .task import (
    Allocation,
    Bid,
    FailureKind,
    FailureReport,
    Proposal,
    SubTask,
    SubTaskDescriptor,
    Task,
    TaskOutcome,
    TaskState,
)

__all__ = [
    "AgentProfile",
    "Allocation",
    "AuthorizationResult",
    "AutonomyGrant",
    "Bid",
    "CapabilityMatch",
    "ConsolidationReport",
    "DiscoveryMode",
    "EpisodeRecord",
    "FailureKind",
    "FailureReport",
    "InboundMessage",
    "Interaction",
    "LifecycleState",
    "LivenessSignal",
    "MemorySnapshot",
    "MessageType",
    "ModelProvider",
    "OutboundMessage",
    "Proposal",
    "RestoredAgent",
    "Sandbox",
    "SessionMarker",
    "SkillBinding",
    "SubTask",
    "SubTaskDescriptor",
    "SwarmAgent",
    "Task",
    "TaskOutcome",
    "TaskState",
]
