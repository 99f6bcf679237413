"""Agent identity, lifecycle and autonomy types."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class LifecycleState(StrEnum):
    ACTIVE = "active"
    HIBERNATING = "hibernating"
    TERMINATED = "terminated"


class DiscoveryMode(StrEnum):
    MEDIATED = "mediated"
    LIMITED = "limited"
    AUTONOMOUS = "autonomous"


class AutonomyGrant(StrEnum):
    FULL = "full"
    LIMITED = "limited"
    MEDIATED = "mediated"


@dataclass
class AgentProfile:
    id: str
    capabilities: dict[str, float] = field(default_factory=dict)
    reputation: float = 0.5
    state: LifecycleState = LifecycleState.ACTIVE
    preferences: dict[str, Any] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "capabilities": dict(self.capabilities),
            "reputation": self.reputation,
            "state": self.state.value,
            "preferences": dict(self.preferences),
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AgentProfile:
        return cls(
            id=data["id"],
            capabilities={k: float(v) for k, v in data.get("capabilities", {}).items()},
            reputation=float(data.get("reputation", 0.5)),
            state=LifecycleState(data.get("state", LifecycleState.ACTIVE)),
            preferences=dict(data.get("preferences", {})),
            created_at=float(data.get("created_at", time.time())),
        )


@dataclass(frozen=True)
class CapabilityMatch:
    agent_id: str
    score: float
    reputation: float


@dataclass(frozen=True)
class AuthorizationResult:
    agent_id: str
    reputation: float
    grant: AutonomyGrant

    @property
    def allowed(self) -> bool:
        return self.grant is not AutonomyGrant.MEDIATED

    @property
    def requires_approval(self) -> bool:
        return self.grant is AutonomyGrant.LIMITED


@dataclass(frozen=True)
class SessionMarker:
    session_id: str
    agent_id: str
    hibernated_at: float
    digest: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "agent_id": self.agent_id,
            "hibernated_at": self.hibernated_at,
            "digest": self.digest,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionMarker:
        return cls(
            session_id=data["session_id"],
            agent_id=data["agent_id"],
            hibernated_at=float(data["hibernated_at"]),
            digest=data["digest"],
        )


@dataclass
class RestoredAgent:
    profile: AgentProfile
    marker: SessionMarker

    @property
    def preferences(self) -> dict[str, Any]:
        return self.profile.preferences
