"""Top-level runtime configuration."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import Field

from swarmkeep.config.base import SwarmBaseConfig
from swarmkeep.config.cluster import (
    AllocatorConfig,
    CoordinatorConfig,
    DecomposerConfig,
    DirectoryConfig,
)
from swarmkeep.config.memory import MemoryConfig


class RuntimeConfig(SwarmBaseConfig):
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    directory: DirectoryConfig = Field(default_factory=DirectoryConfig)
    decomposer: DecomposerConfig = Field(default_factory=DecomposerConfig)
    allocator: AllocatorConfig = Field(default_factory=AllocatorConfig)
    coordinator: CoordinatorConfig = Field(default_factory=CoordinatorConfig)

    model_timeout: float = Field(30.0, gt=0.0, description="Deadline for one model call")
    recall_limit: int = Field(5, ge=0, description="Semantic facts injected into a prompt")

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> RuntimeConfig:
        return cls.model_validate(data)

    @classmethod
    def load(cls, path: str | Path) -> RuntimeConfig:
        return cls.model_validate(json.loads(Path(path).read_text(encoding="utf-8")))
