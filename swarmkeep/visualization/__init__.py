"""Terminal rendering of swarm state."""

from .console import render_directory, render_outcome

__all__ = ["render_directory", "render_outcome"]
