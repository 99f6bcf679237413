"""Unit tests for message handling in AgentRuntime."""

import pytest

from swarmkeep.runtime import AgentRuntime, MemoryStateStore
from swarmkeep.types import InboundMessage, LifecycleState, MessageType
from tests.fakes import FakeModel, FakeSandbox, ScriptedAgent, split


def _msg(agent_id, kind, **payload):
    return InboundMessage(agent_id=agent_id, type=kind, payload=payload, channel_id="ch-1")


@pytest.fixture
def model():
    return FakeModel()


@pytest.fixture
def runtime(model, fast_config):
    return AgentRuntime.create(model, FakeSandbox(), MemoryStateStore(), fast_config)


class TestChat:
    async def test_chat_records_interaction(self, runtime, model):
        await runtime.lifecycle.register("a")
        reply = await runtime.handle(_msg("a", MessageType.CHAT, text="hello"))

        assert reply.ok
        assert reply.payload["text"] == "reply 1"
        assert reply.reply_to
        assert reply.channel_id == "ch-1"
        working = await runtime.memory.working("a")
        assert [(i.perception, i.response) for i in working] == [("hello", "reply 1")]

    async def test_prompt_includes_memory(self, runtime, model):
        await runtime.lifecycle.register("a")
        await runtime.handle(_msg("a", MessageType.MEMORY, action="remember", key="home city", value="Lisbon"))
        await runtime.handle(_msg("a", MessageType.CHAT, text="first"))
        await runtime.handle(_msg("a", MessageType.CHAT, text="where is my home city?"))

        prompt = model.prompts[-1]
        assert "- home city: Lisbon" in prompt
        assert "User: first\nAgent: reply 1" in prompt

    async def test_model_failure_is_reported(self, runtime, model):
        await runtime.lifecycle.register("a")
        model.error = ConnectionError("upstream down")
        reply = await runtime.handle(_msg("a", MessageType.CHAT, text="hello"))
        assert reply.error["code"] == "MODEL_FAILURE"
        assert await runtime.memory.working("a") == []

    async def test_model_timeout(self, runtime, model):
        await runtime.lifecycle.register("a")
        model.delay = 1.0
        reply = await runtime.handle(_msg("a", MessageType.CHAT, text="hello"))
        assert reply.error["code"] == "MODEL_FAILURE"

    async def test_empty_text_rejected(self, runtime):
        await runtime.lifecycle.register("a")
        reply = await runtime.handle(_msg("a", MessageType.CHAT))
        assert reply.error["code"] == "INVALID_MESSAGE"

    async def test_unknown_agent(self, runtime):
        reply = await runtime.handle(_msg("ghost", MessageType.CHAT, text="hi"))
        assert reply.error["code"] == "AGENT_NOT_FOUND"

    async def test_unknown_type(self, runtime):
        await runtime.lifecycle.register("a")
        reply = await runtime.handle(InboundMessage("a", "telepathy"))
        assert reply.error["code"] == "INVALID_MESSAGE"


class TestHibernation:
    async def test_message_wakes_hibernating_agent(self, runtime):
        await runtime.lifecycle.register("a")
        await runtime.handle(_msg("a", MessageType.CHAT, text="remember me"))
        marker = await runtime.channel_closed("a")
        assert marker is not None
        assert runtime.lifecycle.state("a") is LifecycleState.HIBERNATING

        reply = await runtime.handle(_msg("a", MessageType.CHAT, text="back again"))
        assert reply.ok
        assert runtime.lifecycle.state("a") is LifecycleState.ACTIVE
        working = await runtime.memory.working("a")
        assert [i.perception for i in working] == ["remember me", "back again"]

    async def test_terminated_agent_rejects_messages(self, runtime):
        await runtime.lifecycle.register("a")
        await runtime.lifecycle.terminate("a")
        reply = await runtime.handle(_msg("a", MessageType.CHAT, text="hi"))
        assert reply.error["code"] == "INVALID_TRANSITION"


class TestSkillAndMemoryMessages:
    async def test_bind_list_unbind(self, runtime):
        await runtime.lifecycle.register("a")
        skill = {"skill_id": "calc", "name": "Calculator", "trigger": "math"}
        assert (await runtime.handle(_msg("a", MessageType.SKILL, action="bind", skill=skill))).ok
        assert runtime.skills.get("a", "calc").name == "Calculator"

        listed = await runtime.handle(_msg("a", MessageType.SKILL, action="list"))
        assert [s["skill_id"] for s in listed.payload["skills"]] == ["calc"]

        removed = await runtime.handle(_msg("a", MessageType.SKILL, action="unbind", skill_id="calc"))
        assert removed.payload["removed"] is True
        assert (await runtime.handle(_msg("a", MessageType.SKILL))).payload["skills"] == []

    async def test_bad_skill_binding(self, runtime):
        await runtime.lifecycle.register("a")
        reply = await runtime.handle(_msg("a", MessageType.SKILL, action="bind", skill={"name": "x"}))
        assert reply.error["code"] == "INVALID_MESSAGE"

    async def test_recall_and_snapshot(self, runtime):
        await runtime.lifecycle.register("a")
        await runtime.handle(_msg("a", MessageType.MEMORY, action="remember", key="color", value="teal"))
        recalled = await runtime.handle(_msg("a", MessageType.MEMORY, action="recall", query="color"))
        assert recalled.payload["facts"] == [{"key": "color", "value": "teal"}]

        snap = await runtime.handle(_msg("a", MessageType.MEMORY, action="snapshot"))
        assert snap.payload["snapshot"]["semantic"] == {"color": "teal"}
        assert len(snap.payload["digest"]) == 64

    @pytest.mark.parametrize(
        "kind, payload",
        [
            (MessageType.MEMORY, {"action": "recall", "limit": "many"}),
            (MessageType.MEMORY, {"action": "recall", "limit": [3]}),
            (MessageType.MEMORY, {"action": "recall", "limit": -1}),
            (MessageType.SKILL, {"action": "unbind", "skill_id": ["calc"]}),
            (MessageType.CHAT, ["hello"]),
            (MessageType.MEMORY, "recall"),
        ],
    )
    async def test_malformed_payload_rejected(self, runtime, kind, payload):
        await runtime.lifecycle.register("a")
        reply = await runtime.handle(InboundMessage("a", kind, payload))
        assert not reply.ok
        assert reply.error["code"] == "INVALID_MESSAGE"

    async def test_consolidate_message(self, runtime):
        await runtime.lifecycle.register("a")
        reply = await runtime.handle(_msg("a", MessageType.MEMORY, action="consolidate"))
        assert reply.payload == {"promoted": [], "trimmed": 0}


class TestSwarmMessages:
    async def test_swarm_runs_with_active_members(self, runtime):
        for agent_id, rep in (("r9", 0.9), ("r6", 0.6)):
            await runtime.lifecycle.register(agent_id, {"search": 0.9}, reputation=rep)
            runtime.join(ScriptedAgent(agent_id, proposal=split(agent_id, ("A",), ("B",))))
        task = {"id": "T", "units": ["A", "B"], "complexity": 0.5, "requirements": {"search": 1.0}}

        reply = await runtime.handle(_msg("r9", MessageType.SWARM, task=task))
        assert reply.ok
        assert reply.payload["state"] == "completed"
        assert set(reply.payload["results"]) == {"T.1", "T.2"}

    async def test_hibernated_members_are_not_candidates(self, runtime):
        await runtime.lifecycle.register("r9", {"search": 0.9}, reputation=0.9)
        runtime.join(ScriptedAgent("r9"))
        await runtime.lifecycle.hibernate("r9")
        assert runtime.members() == {}

        task = {"id": "S", "complexity": 0.1, "requirements": {"search": 1.0}}
        reply = await runtime.handle(_msg("r9", MessageType.SWARM, task=task))
        assert reply.payload["state"] == "failed"
        assert reply.payload["failures"][0]["kind"] == "NoCapableAgent"

    async def test_bad_task(self, runtime):
        reply = await runtime.handle(_msg("a", MessageType.SWARM, task={"complexity": 7}))
        assert reply.error["code"] == "INVALID_MESSAGE"

    async def test_bad_context(self, runtime):
        task = {"id": "S", "complexity": 0.1}
        reply = await runtime.handle(_msg("a", MessageType.SWARM, task=task, context="friday"))
        assert reply.error["code"] == "INVALID_MESSAGE"

    async def test_swarm_requires_sandbox(self, model):
        runtime = AgentRuntime.create(model)
        reply = await runtime.handle(_msg("a", MessageType.SWARM, task={"id": "T"}))
        assert reply.error["code"] == "INVALID_MESSAGE"
