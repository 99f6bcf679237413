"""
Memory Configuration

Capacities of the bounded tiers and the consolidation policy.

- working: FIFO window of recent perception/response pairs
- episodic: interaction log, consolidated into semantic memory on overflow
- semantic / procedural: unbounded
"""

from pydantic import Field

from swarmkeep.config.base import SwarmBaseConfig


class MemoryConfig(SwarmBaseConfig):
    working_capacity: int = Field(
        10,
        ge=1,
        description="Working memory capacity W (FIFO eviction)",
    )

    episodic_capacity: int = Field(
        100,
        ge=2,
        description="Episodic memory capacity E; overflow triggers consolidation",
    )

    consolidation_retain_ratio: float = Field(
        0.5,
        gt=0.0,
        lt=1.0,
        description="Fraction of E kept (most recent records) after consolidation",
    )

    auto_consolidate: bool = Field(
        True,
        description="Consolidate automatically when an append overflows episodic memory",
    )

    pattern_similarity: float = Field(
        0.6,
        ge=0.0,
        le=1.0,
        description="Cosine similarity above which two episodes belong to one pattern",
    )

    min_pattern_support: int = Field(
        2,
        ge=1,
        description="Minimum number of episodes for a cluster to become a semantic pattern",
    )

    @property
    def retained_episodes(self) -> int:
        return max(1, int(self.episodic_capacity * self.consolidation_retain_ratio))
