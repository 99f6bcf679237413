"""Task, sub-task, bid and allocation types."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Literal


class TaskState(StrEnum):
    PENDING = "pending"
    DECOMPOSED = "decomposed"
    ALLOCATED = "allocated"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    REASSIGNED = "reassigned"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskState.COMPLETED, TaskState.FAILED)


class FailureKind(StrEnum):
    NO_CAPABLE_AGENT = "NoCapableAgent"
    RETRIES_EXHAUSTED = "RetriesExhausted"
    EXECUTION_FAILURE = "ExecutionFailure"
    STALL_DETECTED = "StallDetected"


@dataclass(frozen=True)
class FailureReport:
    subtask_id: str
    kind: FailureKind
    attempts: int = 0
    agent_id: str | None = None
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "subtask_id": self.subtask_id,
            "kind": self.kind.value,
            "attempts": self.attempts,
            "agent_id": self.agent_id,
            "message": self.message,
        }


@dataclass
class Task:
    """A unit of requested work.

    ``units`` names the indivisible pieces of work the payload consists of; a
    decomposition must partition them. An empty list means the payload is a
    single unit named after the task id.
    """

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    description: str = ""
    units: list[str] = field(default_factory=list)
    complexity: float = 0.5
    requirements: dict[str, float] = field(default_factory=dict)
    state: TaskState = TaskState.PENDING

    def __post_init__(self) -> None:
        if not 0.0 <= self.complexity <= 1.0:
            raise ValueError(f"complexity must be in [0, 1], got {self.complexity}")
        if not self.units:
            self.units = [self.id]
        if len(set(self.units)) != len(self.units):
            raise ValueError(f"task {self.id} lists a work unit more than once")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        kwargs: dict[str, Any] = {
            "description": str(data.get("description", "")),
            "units": [str(u) for u in data.get("units", [])],
            "complexity": float(data.get("complexity", 0.5)),
            "requirements": {k: float(v) for k, v in data.get("requirements", {}).items()},
        }
        if data.get("id"):
            kwargs["id"] = str(data["id"])
        return cls(**kwargs)


@dataclass
class SubTask:
    id: str
    parent_id: str
    description: str = ""
    units: list[str] = field(default_factory=list)
    requirements: dict[str, float] = field(default_factory=dict)
    state: TaskState = TaskState.PENDING
    assigned_agent: str | None = None
    reassignments: int = 0
    failure: FailureReport | None = None

    @classmethod
    def wrap(cls, task: Task) -> SubTask:
        """The trivial decomposition: the task is its own only sub-task."""
        return cls(
            id=task.id,
            parent_id=task.id,
            description=task.description,
            units=list(task.units),
            requirements=dict(task.requirements),
        )

    def matches(self, task: Task) -> bool:
        return (
            self.id == task.id
            and self.description == task.description
            and self.units == task.units
            and self.requirements == task.requirements
        )

    def fail(self, kind: FailureKind, message: str = "", agent_id: str | None = None) -> None:
        self.state = TaskState.FAILED
        self.failure = FailureReport(
            subtask_id=self.id,
            kind=kind,
            attempts=self.reassignments,
            agent_id=agent_id,
            message=message,
        )


@dataclass(frozen=True)
class SubTaskDescriptor:
    description: str
    units: tuple[str, ...]
    requirements: dict[str, float] = field(default_factory=dict)


ProposalKind = Literal["split", "atomic"]


@dataclass(frozen=True)
class Proposal:
    """A decomposition proposal: ``atomic`` keeps the task whole, ``split`` lists parts."""

    proposer_id: str
    kind: ProposalKind = "split"
    parts: tuple[SubTaskDescriptor, ...] = ()

    def partition(self, task: Task) -> frozenset[frozenset[str]]:
        if self.kind == "atomic":
            return frozenset({frozenset(task.units)})
        return frozenset(frozenset(p.units) for p in self.parts)


@dataclass(frozen=True)
class Bid:
    subtask_id: str
    agent_id: str
    cost: float
    confidence: float

    def score(self, reputation: float) -> float:
        return (self.confidence * reputation) / self.cost


@dataclass(frozen=True)
class Allocation:
    subtask_id: str
    agent_id: str
    cost: float
    confidence: float
    reputation: float
    round: int = 0
    superseded: bool = False
    created_at: float = field(default_factory=time.time)

    @property
    def score(self) -> float:
        return (self.confidence * self.reputation) / self.cost


@dataclass
class TaskOutcome:
    task_id: str
    state: TaskState
    results: dict[str, Any] = field(default_factory=dict)
    failures: list[FailureReport] = field(default_factory=list)
    subtasks: list[SubTask] = field(default_factory=list)
    allocations: dict[str, list[Allocation]] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.state is TaskState.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "state": self.state.value,
            "results": dict(self.results),
            "failures": [f.to_dict() for f in self.failures],
            "subtasks": {s.id: s.state.value for s in self.subtasks},
        }
