"""CapabilityDirectory: capability matching, reputation EMA and autonomy grants."""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Collection, Mapping

from ..config import DirectoryConfig
from ..errors import ReputationUnderflowError
from ..types import (
    AuthorizationResult,
    AutonomyGrant,
    CapabilityMatch,
    DiscoveryMode,
)

logger = logging.getLogger(__name__)

_MODE_CAP = {
    DiscoveryMode.MEDIATED: AutonomyGrant.MEDIATED,
    DiscoveryMode.LIMITED: AutonomyGrant.LIMITED,
    DiscoveryMode.AUTONOMOUS: AutonomyGrant.FULL,
}
# float drift tolerated before clamping
_EPS = 1e-9
_GRANT_RANK = {AutonomyGrant.MEDIATED: 0, AutonomyGrant.LIMITED: 1, AutonomyGrant.FULL: 2}


def _check_unit(name: str, value: float) -> float:
    value = float(value)
    if math.isnan(value) or not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be in [0, 1], got {value}")
    return value


def match_score(requirements: Mapping[str, float], capabilities: Mapping[str, float]) -> float:
    """Σ(importance × proficiency) / Σ(importance); absent capabilities contribute 0."""
    total = sum(requirements.values())
    if total <= 0:
        return 1.0
    return sum(imp * capabilities.get(cap, 0.0) for cap, imp in requirements.items()) / total


class CapabilityDirectory:
    """Registry of agent capabilities and reputations.

    Reputation updates take a per-agent lock, so concurrent outcomes for
    different agents never serialize behind each other.
    """

    def __init__(self, config: DirectoryConfig | None = None) -> None:
        self.config = config or DirectoryConfig()
        self._capabilities: dict[str, dict[str, float]] = {}
        self._reputation: dict[str, float] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock(self, agent_id: str) -> asyncio.Lock:
        lock = self._locks.get(agent_id)
        if lock is None:
            lock = self._locks[agent_id] = asyncio.Lock()
        return lock

    @property
    def agents(self) -> list[str]:
        return sorted(self._capabilities)

    def registered(self, agent_id: str) -> bool:
        return agent_id in self._capabilities

    def register(
        self,
        agent_id: str,
        capabilities: Mapping[str, float],
        reputation: float | None = None,
    ) -> None:
        caps = {name: _check_unit(f"proficiency[{name}]", p) for name, p in capabilities.items()}
        if reputation is not None:
            if math.isnan(reputation) or not 0.0 <= reputation <= 1.0:
                raise ReputationUnderflowError(agent_id, reputation)
            self._reputation[agent_id] = float(reputation)
        self._capabilities[agent_id] = caps
        logger.debug("Registered %s with capabilities %s", agent_id, sorted(caps))

    def unregister(self, agent_id: str) -> None:
        self._capabilities.pop(agent_id, None)
        self._reputation.pop(agent_id, None)
        self._locks.pop(agent_id, None)

    def capabilities(self, agent_id: str) -> dict[str, float]:
        return dict(self._capabilities.get(agent_id, {}))

    def reputation(self, agent_id: str) -> float:
        return self._reputation.get(agent_id, self.config.initial_reputation)

    def find(
        self,
        requirements: Mapping[str, float],
        exclude: Collection[str] = (),
    ) -> list[CapabilityMatch]:
        """Agents scoring above the match threshold, best first, ties by agent id."""
        for cap, imp in requirements.items():
            if imp < 0:
                raise ValueError(f"importance of {cap} must be non-negative, got {imp}")
        matches = []
        for agent_id, caps in self._capabilities.items():
            if agent_id in exclude:
                continue
            score = match_score(requirements, caps)
            if score > self.config.match_threshold:
                matches.append(CapabilityMatch(agent_id, score, self.reputation(agent_id)))
        matches.sort(key=lambda m: (-m.score, m.agent_id))
        return matches

    async def update_reputation(self, agent_id: str, success: bool) -> float:
        alpha = self.config.reputation_alpha
        async with self._lock(agent_id):
            current = self.reputation(agent_id)
            updated = current * (1 - alpha) + (1.0 if success else 0.0) * alpha
            if math.isnan(updated) or not -_EPS <= updated <= 1.0 + _EPS:
                raise ReputationUnderflowError(agent_id, updated)
            updated = min(1.0, max(0.0, updated))
            self._reputation[agent_id] = updated
        logger.debug("Reputation %s: %.3f -> %.3f (success=%s)", agent_id, current, updated, success)
        return updated

    def authorize(self, agent_id: str) -> AuthorizationResult:
        score = self.reputation(agent_id)
        if score > self.config.full_autonomy_threshold:
            grant = AutonomyGrant.FULL
        elif score > self.config.limited_autonomy_threshold:
            grant = AutonomyGrant.LIMITED
        else:
            grant = AutonomyGrant.MEDIATED
        cap = _MODE_CAP[self.config.discovery_mode]
        if _GRANT_RANK[grant] > _GRANT_RANK[cap]:
            grant = cap
        return AuthorizationResult(agent_id=agent_id, reputation=score, grant=grant)
