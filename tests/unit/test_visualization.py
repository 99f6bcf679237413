"""Unit tests for rich console rendering."""

from rich.console import Console

from swarmkeep.cluster import CapabilityDirectory
from swarmkeep.types import Allocation, FailureKind, FailureReport, SubTask, TaskOutcome, TaskState
from swarmkeep.visualization import render_directory, render_outcome


def _console():
    return Console(record=True, width=120, color_system=None)


class TestRender:
    def test_outcome(self):
        done = SubTask(id="T.1", parent_id="T", units=["A"], state=TaskState.COMPLETED)
        failed = SubTask(id="T.2", parent_id="T", units=["B"], state=TaskState.FAILED)
        outcome = TaskOutcome(
            task_id="T",
            state=TaskState.FAILED,
            results={"T.1": "ok"},
            failures=[FailureReport("T.2", FailureKind.RETRIES_EXHAUSTED, 2, "a2", "boom")],
            subtasks=[done, failed],
            allocations={
                "T.1": [Allocation("T.1", "a1", 1.0, 0.9, 0.9)],
                "T.2": [Allocation("T.2", "a2", 2.0, 0.5, 0.6, superseded=True)],
            },
        )
        console = _console()
        render_outcome(outcome, console)
        text = console.export_text()
        assert "Task T" in text
        assert "RetriesExhausted: boom" in text
        assert "superseded" in text
        assert "score=0.810" in text

    def test_directory(self):
        directory = CapabilityDirectory()
        directory.register("a1", {"search": 0.9}, reputation=0.95)
        console = _console()
        render_directory(directory, console)
        text = console.export_text()
        assert "a1" in text
        assert "0.950" in text
        assert "full" in text
        assert "search=0.9" in text
