"""Structured error hierarchy for the agent runtime and swarm engine."""

from __future__ import annotations


class SwarmError(Exception):
    def __init__(self, code: str, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.cause = cause

    @classmethod
    def wrap(cls, err: Exception) -> SwarmError:
        if isinstance(err, SwarmError):
            return err
        return SwarmError("UNKNOWN", str(err), err)

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


# ── Lifecycle / memory (fatal to the call, never retried) ──


class AgentNotFoundError(SwarmError):
    def __init__(self, agent_id: str, detail: str = "") -> None:
        message = f"Agent {agent_id} not found"
        if detail:
            message += f": {detail}"
        super().__init__("AGENT_NOT_FOUND", message)
        self.agent_id = agent_id


class AgentAlreadyActiveError(SwarmError):
    def __init__(self, agent_id: str) -> None:
        super().__init__("AGENT_ALREADY_ACTIVE", f"Agent {agent_id} is already active")
        self.agent_id = agent_id


class InvalidTransitionError(SwarmError):
    def __init__(self, agent_id: str, current: str, target: str) -> None:
        super().__init__(
            "INVALID_TRANSITION", f"Agent {agent_id} cannot move from {current} to {target}"
        )
        self.agent_id = agent_id
        self.current = current
        self.target = target


class CorruptSnapshotError(SwarmError):
    def __init__(self, agent_id: str, reason: str, cause: Exception | None = None) -> None:
        super().__init__("CORRUPT_SNAPSHOT", f"Snapshot for {agent_id} is corrupt: {reason}", cause)
        self.agent_id = agent_id
        self.reason = reason


# ── Market ──


class InvalidBidError(SwarmError):
    def __init__(
        self, agent_id: str, subtask_id: str, reason: str, code: str = "INVALID_BID"
    ) -> None:
        super().__init__(code, f"Bid from {agent_id} on {subtask_id} rejected: {reason}")
        self.agent_id = agent_id
        self.subtask_id = subtask_id
        self.reason = reason


class InvalidBidCostError(InvalidBidError):
    def __init__(self, agent_id: str, subtask_id: str, cost: float) -> None:
        super().__init__(
            agent_id, subtask_id, f"cost must be positive, got {cost}", code="INVALID_BID_COST"
        )
        self.cost = cost


class NoCapableAgentError(SwarmError):
    def __init__(self, subtask_id: str) -> None:
        super().__init__("NO_CAPABLE_AGENT", f"No capable agent bid on sub-task {subtask_id}")
        self.subtask_id = subtask_id


class ReputationUnderflowError(SwarmError):
    def __init__(self, agent_id: str, value: float) -> None:
        super().__init__(
            "REPUTATION_UNDERFLOW", f"Reputation {value!r} for {agent_id} is outside [0, 1]"
        )
        self.agent_id = agent_id
        self.value = value


# ── Coordination (recovered locally) ──


class DecompositionInvalidError(SwarmError):
    def __init__(self, task_id: str, reason: str) -> None:
        super().__init__("DECOMPOSITION_INVALID", f"Decomposition of {task_id} invalid: {reason}")
        self.task_id = task_id
        self.reason = reason


class StallDetectedError(SwarmError):
    def __init__(self, subtask_id: str, agent_id: str, missed_checks: int) -> None:
        super().__init__(
            "STALL_DETECTED",
            f"Agent {agent_id} stalled on {subtask_id} after {missed_checks} missed checks",
        )
        self.subtask_id = subtask_id
        self.agent_id = agent_id
        self.missed_checks = missed_checks


class ExecutionFailureError(SwarmError):
    def __init__(self, subtask_id: str, agent_id: str, cause: Exception | None = None) -> None:
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            "EXECUTION_FAILURE", f"Execution of {subtask_id} by {agent_id} failed{detail}", cause
        )
        self.subtask_id = subtask_id
        self.agent_id = agent_id


# ── Collaborators ──


class ModelInvocationError(SwarmError):
    def __init__(self, agent_id: str, message: str, cause: Exception | None = None) -> None:
        super().__init__("MODEL_FAILURE", f"Model call for {agent_id} failed: {message}", cause)
        self.agent_id = agent_id


class InvalidMessageError(SwarmError):
    def __init__(self, message_id: str, reason: str) -> None:
        super().__init__("INVALID_MESSAGE", f"Message {message_id} rejected: {reason}")
        self.message_id = message_id
        self.reason = reason
