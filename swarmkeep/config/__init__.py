"""
Swarmkeep Configuration Module
"""

from swarmkeep.config.base import SwarmBaseConfig
from swarmkeep.config.cluster import (
    AllocatorConfig,
    CoordinatorConfig,
    DecomposerConfig,
    DirectoryConfig,
)
from swarmkeep.config.memory import MemoryConfig
from swarmkeep.config.runtime import RuntimeConfig

__all__ = [
    "AllocatorConfig",
    "CoordinatorConfig",
    "DecomposerConfig",
    "DirectoryConfig",
    "MemoryConfig",
    "RuntimeConfig",
    "SwarmBaseConfig",
]
