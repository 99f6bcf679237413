"""Agent runtime: lifecycle, durable state, skills and message handling."""

from .agent_runtime import AgentRuntime
from .lifecycle import LifecycleManager
from .skills import SkillTable
from .state_store import FileStateStore, MemoryStateStore, StateStore

__all__ = [
    "AgentRuntime",
    "FileStateStore",
    "LifecycleManager",
    "MemoryStateStore",
    "SkillTable",
    "StateStore",
]
