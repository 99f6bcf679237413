"""Assemble an inference prompt from an agent's memory tiers."""

from __future__ import annotations

from typing import Any

from ..types import Interaction, SkillBinding


class PromptAssembler:
    def __init__(self, system: str = "You are a persistent agent. Use what you remember.") -> None:
        self.system = system

    def build(
        self,
        message: str,
        working: list[Interaction],
        facts: list[tuple[str, Any]],
        skills: list[SkillBinding],
    ) -> str:
        sections = [self.system]
        if skills:
            sections.append(
                "Skills:\n" + "\n".join(f"- {s.name} ({s.skill_id}): {s.trigger}" for s in skills)
            )
        if facts:
            sections.append("Known:\n" + "\n".join(f"- {k}: {_summarize(v)}" for k, v in facts))
        if working:
            sections.append(
                "Recent:\n"
                + "\n".join(f"User: {i.perception}\nAgent: {i.response}" for i in working)
            )
        sections.append(f"User: {message}\nAgent:")
        return "\n\n".join(sections)


def _summarize(value: Any) -> str:
    if isinstance(value, dict) and "summary" in value:
        return str(value["summary"])
    return str(value)
