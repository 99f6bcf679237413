"""Transport-facing message envelopes."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class MessageType(StrEnum):
    CHAT = "chat"
    SKILL = "skill"
    MEMORY = "memory"
    SWARM = "swarm"


@dataclass
class InboundMessage:
    agent_id: str
    type: MessageType
    payload: dict[str, Any] = field(default_factory=dict)
    channel_id: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)


@dataclass
class OutboundMessage:
    reply_to: str
    agent_id: str
    type: MessageType
    channel_id: str = ""
    payload: dict[str, Any] = field(default_factory=dict)
    error: dict[str, str] | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
