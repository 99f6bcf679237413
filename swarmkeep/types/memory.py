"""Memory tier record types and the durable snapshot format."""

from __future__ import annotations

import hashlib
import json
import time
from dataclasses import dataclass, field
from typing import Any

from ..errors import CorruptSnapshotError

SNAPSHOT_VERSION = 1
TIERS = ("working", "episodic", "semantic", "procedural")


@dataclass
class Interaction:
    """A perception/response pair held in working memory."""

    perception: str
    response: str
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {"perception": self.perception, "response": self.response, "timestamp": self.timestamp}


@dataclass
class EpisodeRecord:
    input: str
    output: str
    timestamp: float = field(default_factory=time.time)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "input": self.input,
            "output": self.output,
            "timestamp": self.timestamp,
            "metadata": dict(self.metadata),
        }


@dataclass
class SkillBinding:
    skill_id: str
    name: str
    trigger: str = ""
    endpoint: str = ""
    config: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "skill_id": self.skill_id,
            "name": self.name,
            "trigger": self.trigger,
            "endpoint": self.endpoint,
            "config": dict(self.config),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SkillBinding:
        return cls(
            skill_id=data["skill_id"],
            name=data["name"],
            trigger=data.get("trigger", ""),
            endpoint=data.get("endpoint", ""),
            config=dict(data.get("config", {})),
        )


@dataclass
class ConsolidationReport:
    agent_id: str
    promoted: list[str] = field(default_factory=list)
    trimmed: int = 0

    @property
    def ran(self) -> bool:
        return self.trimmed > 0


@dataclass
class MemorySnapshot:
    """Serialized view of all four tiers of one agent's memory."""

    agent_id: str
    working: list[Interaction] = field(default_factory=list)
    episodic: list[EpisodeRecord] = field(default_factory=list)
    semantic: dict[str, Any] = field(default_factory=dict)
    procedural: dict[str, SkillBinding] = field(default_factory=dict)
    version: int = SNAPSHOT_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "agent_id": self.agent_id,
            "working": [i.to_dict() for i in self.working],
            "episodic": [e.to_dict() for e in self.episodic],
            "semantic": json.loads(json.dumps(self.semantic)),
            "procedural": {k: b.to_dict() for k, b in self.procedural.items()},
        }

    def to_bytes(self) -> bytes:
        return json.dumps(
            self.to_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False
        ).encode("utf-8")

    def digest(self) -> str:
        return hashlib.sha256(self.to_bytes()).hexdigest()

    @classmethod
    def from_dict(cls, data: Any) -> MemorySnapshot:
        """Parse a snapshot, raising CorruptSnapshotError on any missing or malformed tier."""
        if not isinstance(data, dict):
            raise CorruptSnapshotError("?", f"expected mapping, got {type(data).__name__}")
        agent_id = data.get("agent_id")
        if not isinstance(agent_id, str) or not agent_id:
            raise CorruptSnapshotError("?", "missing agent_id")
        missing = [t for t in TIERS if t not in data]
        if missing:
            raise CorruptSnapshotError(agent_id, f"missing tiers: {', '.join(missing)}")
        version = data.get("version", SNAPSHOT_VERSION)
        if version != SNAPSHOT_VERSION:
            raise CorruptSnapshotError(agent_id, f"unsupported version {version!r}")

        working, episodic, semantic, procedural = (data[t] for t in TIERS)
        if not isinstance(working, list) or not isinstance(episodic, list):
            raise CorruptSnapshotError(agent_id, "working/episodic tiers must be lists")
        if not isinstance(semantic, dict) or not isinstance(procedural, dict):
            raise CorruptSnapshotError(agent_id, "semantic/procedural tiers must be mappings")
        try:
            return cls(
                agent_id=agent_id,
                working=[
                    Interaction(
                        perception=str(w["perception"]),
                        response=str(w["response"]),
                        timestamp=float(w["timestamp"]),
                    )
                    for w in working
                ],
                episodic=[
                    EpisodeRecord(
                        input=str(e["input"]),
                        output=str(e["output"]),
                        timestamp=float(e["timestamp"]),
                        metadata=dict(e.get("metadata", {})),
                    )
                    for e in episodic
                ],
                semantic=json.loads(json.dumps(semantic)),
                procedural={k: SkillBinding.from_dict(v) for k, v in procedural.items()},
                version=version,
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CorruptSnapshotError(agent_id, f"malformed record ({e})", e) from e
