"""Unit tests for propose/reconcile task decomposition."""

import pytest

from swarmkeep.cluster import CapabilityDirectory, TaskDecomposer, validate_parts
from swarmkeep.config import DecomposerConfig
from swarmkeep.errors import DecompositionInvalidError
from swarmkeep.types import Proposal, SubTaskDescriptor, Task, TaskState
from tests.fakes import ScriptedAgent, split


@pytest.fixture
def ranked_directory():
    d = CapabilityDirectory()
    d.register("hi", {}, reputation=0.9)
    d.register("mid", {}, reputation=0.6)
    d.register("lo", {}, reputation=0.4)
    return d


def _task(**kwargs):
    kwargs.setdefault("id", "T")
    kwargs.setdefault("units", ["A", "B"])
    kwargs.setdefault("complexity", 0.5)
    return Task(**kwargs)


class TestValidateParts:
    def _parts(self, *groups):
        return [SubTaskDescriptor("p", tuple(g)) for g in groups]

    def test_valid_partition(self):
        validate_parts(_task(units=["A", "B", "C"]), self._parts(("A",), ("B", "C")))

    @pytest.mark.parametrize(
        "groups",
        [
            (),
            (("A",),),
            (("A", "B"), ("B",)),
            (("A",), ("B",), ("Z",)),
            (("A", "A"), ("B",)),
            ((), ("A", "B")),
        ],
    )
    def test_invalid_partitions(self, groups):
        with pytest.raises(DecompositionInvalidError):
            validate_parts(_task(), self._parts(*groups))


class TestDecompose:
    async def test_simple_task_is_its_own_subtask(self, ranked_directory):
        task = _task(complexity=0.29, description="small", requirements={"x": 1.0})
        agents = [ScriptedAgent("hi", proposal=split("hi", ("A",), ("B",)))]
        subtasks = await TaskDecomposer(ranked_directory).decompose(task, agents)
        assert len(subtasks) == 1
        assert subtasks[0].matches(task)
        assert agents[0].proposals_requested == 0

    async def test_majority_wins(self, ranked_directory):
        agents = [
            ScriptedAgent("hi", proposal=Proposal("hi", kind="atomic")),
            ScriptedAgent("mid", proposal=split("mid", ("A",), ("B",))),
            ScriptedAgent("lo", proposal=split("lo", ("B",), ("A",))),
        ]
        task = _task()
        subtasks = await TaskDecomposer(ranked_directory).decompose(task, agents)
        assert [s.id for s in subtasks] == ["T.1", "T.2"]
        assert [s.units for s in subtasks] == [["A"], ["B"]]
        assert all(s.parent_id == "T" for s in subtasks)
        assert task.state is TaskState.DECOMPOSED

    async def test_no_majority_falls_back_to_highest_reputation(self, ranked_directory):
        task = _task(units=["A", "B", "C"])
        agents = [
            ScriptedAgent("mid", proposal=split("mid", ("A",), ("B",), ("C",))),
            ScriptedAgent("hi", proposal=split("hi", ("A", "B"), ("C",))),
        ]
        subtasks = await TaskDecomposer(ranked_directory).decompose(task, agents)
        assert [s.units for s in subtasks] == [["A", "B"], ["C"]]

    async def test_atomic_consensus_keeps_task_whole(self, ranked_directory):
        agents = [ScriptedAgent(a, proposal=Proposal(a, kind="atomic")) for a in ("hi", "mid")]
        task = _task()
        subtasks = await TaskDecomposer(ranked_directory).decompose(task, agents)
        assert len(subtasks) == 1
        assert subtasks[0].matches(task)

    async def test_invalid_proposals_fall_back_to_single_task(self, ranked_directory):
        agents = [
            ScriptedAgent("hi", proposal=split("hi", ("A", "B"), ("B",))),
            ScriptedAgent("mid", proposal=split("mid", ("A",))),
        ]
        task = _task()
        subtasks = await TaskDecomposer(ranked_directory).decompose(task, agents)
        assert len(subtasks) == 1
        assert subtasks[0].id == "T"

    async def test_invalid_proposal_does_not_vote(self, ranked_directory):
        agents = [
            ScriptedAgent("hi", proposal=split("hi", ("A", "B"), ("Z",))),
            ScriptedAgent("lo", proposal=split("lo", ("A",), ("B",))),
        ]
        subtasks = await TaskDecomposer(ranked_directory).decompose(_task(), agents)
        assert [s.units for s in subtasks] == [["A"], ["B"]]

    async def test_slow_proposer_is_ignored(self, ranked_directory):
        config = DecomposerConfig(proposal_timeout=0.05)
        agents = [
            ScriptedAgent("hi", proposal=Proposal("hi", kind="atomic"), propose_delay=1.0),
            ScriptedAgent("mid", proposal=split("mid", ("A",), ("B",))),
        ]
        subtasks = await TaskDecomposer(ranked_directory, config).decompose(_task(), agents)
        assert len(subtasks) == 2

    async def test_no_proposers(self, ranked_directory):
        subtasks = await TaskDecomposer(ranked_directory).decompose(_task(), [])
        assert [s.id for s in subtasks] == ["T"]

    async def test_too_many_parts_discarded(self, ranked_directory):
        config = DecomposerConfig(max_subtasks=2)
        task = _task(units=["A", "B", "C"])
        agents = [ScriptedAgent("hi", proposal=split("hi", ("A",), ("B",), ("C",)))]
        subtasks = await TaskDecomposer(ranked_directory, config).decompose(task, agents)
        assert len(subtasks) == 1

    async def test_merge_takes_strongest_requirement(self, ranked_directory):
        agents = [
            ScriptedAgent("hi", proposal=split("hi", ("A",), ("B",), requirements={"x": 0.3})),
            ScriptedAgent("mid", proposal=split("mid", ("A",), ("B",), requirements={"x": 0.8, "y": 0.2})),
        ]
        subtasks = await TaskDecomposer(ranked_directory).decompose(_task(), agents)
        assert subtasks[0].requirements == {"x": 0.8, "y": 0.2}

    async def test_parts_inherit_task_requirements(self, ranked_directory):
        agents = [ScriptedAgent("hi", proposal=split("hi", ("A",), ("B",)))]
        task = _task(requirements={"search": 1.0})
        subtasks = await TaskDecomposer(ranked_directory).decompose(task, agents)
        assert all(s.requirements == {"search": 1.0} for s in subtasks)

    async def test_spoofed_proposer_id_is_corrected(self, ranked_directory):
        agents = [ScriptedAgent("lo", proposal=split("hi", ("A",), ("B",)))]
        proposals = await TaskDecomposer(ranked_directory).gather_proposals(_task(), agents)
        assert proposals[0].proposer_id == "lo"
