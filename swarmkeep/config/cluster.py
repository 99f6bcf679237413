"""Swarm configuration: directory, decomposition, market and execution."""

from __future__ import annotations

from pydantic import Field, model_validator

from swarmkeep.config.base import SwarmBaseConfig
from swarmkeep.types import DiscoveryMode


class DirectoryConfig(SwarmBaseConfig):
    match_threshold: float = Field(
        0.7, ge=0.0, le=1.0, description="Agents must score strictly above this to match"
    )
    reputation_alpha: float = Field(
        0.1, gt=0.0, le=1.0, description="EMA smoothing factor for reputation updates"
    )
    initial_reputation: float = Field(
        0.5, ge=0.0, le=1.0, description="Reputation assumed for unknown agents"
    )
    full_autonomy_threshold: float = Field(
        0.8, ge=0.0, le=1.0, description="Reputation above this grants full autonomy"
    )
    limited_autonomy_threshold: float = Field(
        0.6, ge=0.0, le=1.0, description="Reputation above this grants limited autonomy"
    )
    discovery_mode: DiscoveryMode = Field(
        DiscoveryMode.AUTONOMOUS, description="Upper bound on the autonomy the directory grants"
    )

    @model_validator(mode="after")
    def _check_thresholds(self) -> DirectoryConfig:
        if self.limited_autonomy_threshold >= self.full_autonomy_threshold:
            raise ValueError("limited_autonomy_threshold must be below full_autonomy_threshold")
        return self


class DecomposerConfig(SwarmBaseConfig):
    complexity_threshold: float = Field(
        0.3, ge=0.0, le=1.0, description="Tasks below this complexity are never decomposed"
    )
    proposal_timeout: float = Field(
        5.0, gt=0.0, description="Seconds to wait for each decomposition proposal"
    )
    max_subtasks: int = Field(16, ge=1, description="Proposals with more parts are discarded")


class AllocatorConfig(SwarmBaseConfig):
    bid_timeout: float = Field(2.0, gt=0.0, description="Seconds to wait for each bid")
    bid_reputation_floor: float = Field(
        0.4, ge=0.0, le=1.0, description="Only agents with reputation above this may bid"
    )
    stall_cooldown: float = Field(
        60.0, ge=0.0, description="Seconds a stalled agent is excluded from bidding"
    )


class CoordinatorConfig(SwarmBaseConfig):
    liveness_interval: float = Field(5.0, gt=0.0, description="Seconds between liveness checks")
    liveness_timeout: float = Field(
        2.0, gt=0.0, description="Deadline for a single liveness check"
    )
    max_missed_checks: int = Field(
        3, ge=1, description="Consecutive missed checks that count as a stall"
    )
    max_reassignments: int = Field(
        2, ge=0, description="Reassignments per sub-task before permanent failure"
    )
    execution_timeout: float | None = Field(
        None, gt=0.0, description="Optional hard deadline for one execution attempt"
    )
