"""Tiered agent memory: working, episodic, semantic, procedural."""

from .consolidation import PatternConsolidator
from .prompt import PromptAssembler
from .store import AgentMemory, MemoryStore
from .tiers import EpisodicMemory, ProceduralMemory, SemanticMemory, WorkingMemory

__all__ = [
    "AgentMemory",
    "EpisodicMemory",
    "MemoryStore",
    "PatternConsolidator",
    "ProceduralMemory",
    "PromptAssembler",
    "SemanticMemory",
    "WorkingMemory",
]
