"""
Pytest Configuration and Fixtures
"""

import pytest

from swarmkeep.cluster import CapabilityDirectory, Swarm
from swarmkeep.config import (
    AllocatorConfig,
    CoordinatorConfig,
    DecomposerConfig,
    MemoryConfig,
    RuntimeConfig,
)
from swarmkeep.memory import MemoryStore
from swarmkeep.runtime import LifecycleManager, MemoryStateStore
from tests.fakes import FakeSandbox


@pytest.fixture
def fast_config() -> RuntimeConfig:
    """Runtime config with millisecond deadlines for timing-sensitive tests."""
    return RuntimeConfig(
        memory=MemoryConfig(working_capacity=3, episodic_capacity=6),
        decomposer=DecomposerConfig(proposal_timeout=0.2),
        allocator=AllocatorConfig(bid_timeout=0.2, stall_cooldown=60.0),
        coordinator=CoordinatorConfig(
            liveness_interval=0.01,
            liveness_timeout=0.01,
            max_missed_checks=3,
            max_reassignments=2,
        ),
        model_timeout=0.2,
    )


@pytest.fixture
def directory() -> CapabilityDirectory:
    return CapabilityDirectory()


@pytest.fixture
def storage() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore(MemoryConfig(working_capacity=3, episodic_capacity=6))


@pytest.fixture
def lifecycle(memory_store, storage, directory) -> LifecycleManager:
    return LifecycleManager(memory_store, storage, directory)


@pytest.fixture
def sandbox() -> FakeSandbox:
    return FakeSandbox()


@pytest.fixture
def swarm(sandbox, fast_config, directory) -> Swarm:
    return Swarm.create(sandbox, fast_config, directory)
