"""
Rich console views - task outcomes as a tree, the directory as a table.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from ..cluster.directory import CapabilityDirectory
from ..types import TaskOutcome, TaskState

_STATE_STYLE = {
    TaskState.COMPLETED: "bold green",
    TaskState.FAILED: "bold red",
    TaskState.EXECUTING: "yellow",
    TaskState.REASSIGNED: "magenta",
}


def _styled(state: TaskState) -> str:
    style = _STATE_STYLE.get(state, "white")
    return f"[{style}]{state.value}[/{style}]"


def outcome_tree(outcome: TaskOutcome) -> Tree:
    root = Tree(f"[bold blue]Task {outcome.task_id}[/bold blue] {_styled(outcome.state)}")
    failures = {f.subtask_id: f for f in outcome.failures}
    for subtask in outcome.subtasks:
        node = root.add(f"{subtask.id} {_styled(subtask.state)} units={','.join(subtask.units)}")
        for allocation in outcome.allocations.get(subtask.id, []):
            mark = "[dim]superseded[/dim]" if allocation.superseded else "[green]live[/green]"
            node.add(
                f"round {allocation.round}: {allocation.agent_id} "
                f"score={allocation.score:.3f} cost={allocation.cost:g} {mark}"
            )
        failure = failures.get(subtask.id)
        if failure is not None:
            node.add(f"[bold red]{failure.kind.value}[/bold red]: {failure.message}")
        elif subtask.id in outcome.results:
            node.add(f"[bold]result[/bold]: {str(outcome.results[subtask.id])[:200]}")
    return root


def directory_table(directory: CapabilityDirectory) -> Table:
    table = Table(title="Capability Directory")
    table.add_column("Agent", style="cyan")
    table.add_column("Reputation", justify="right")
    table.add_column("Grant")
    table.add_column("Capabilities")
    for agent_id in directory.agents:
        caps = directory.capabilities(agent_id)
        table.add_row(
            agent_id,
            f"{directory.reputation(agent_id):.3f}",
            directory.authorize(agent_id).grant.value,
            ", ".join(f"{k}={v:g}" for k, v in sorted(caps.items())),
        )
    return table


def render_outcome(outcome: TaskOutcome, console: Console | None = None) -> None:
    console = console or Console()
    console.print(Panel(outcome_tree(outcome), title="Swarm Outcome", border_style="blue"))


def render_directory(directory: CapabilityDirectory, console: Console | None = None) -> None:
    (console or Console()).print(directory_table(directory))
