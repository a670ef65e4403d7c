"""
Tests for worker variants and the worker registry
"""

import json

import pytest
from unittest.mock import AsyncMock

from agentloop.agent.agents import Action, LLMWorker, ScriptedWorker, Worker, WorkerRegistry, get_worker_registry
from agentloop.agent.agents.llm_worker import NEXT_STEP_PROMPT, PLANNING_SYSTEM_PROMPT
from agentloop.agent.agents.scripted_worker import action_from_dict
from agentloop.agent.core.llm.base import BaseLLMClient
from agentloop.agent.core.runtime.models import Message, ToolCall


class FakeLLM(BaseLLMClient):
    def __init__(self, reply):
        self.reply = reply
        self.calls = []

    async def complete(self, *, model, messages, tools=None, tool_choice="auto", max_tokens=None, temperature=None):
        self.calls.append({"model": model, "messages": messages, "tools": tools, "max_tokens": max_tokens})
        return self.reply


class TestScriptedWorker:
    """Replays actions in order"""

    def test_action_from_dict(self):
        action = action_from_dict({"content": "c", "tool_calls": [{"name": "bash", "arguments": {"command": "ls"}}]}, 3)
        assert action.content == "c"
        assert action.tool_calls[0].id == "scripted_3_0"
        assert json.loads(action.tool_calls[0].arguments) == {"command": "ls"}

    def test_tool_call_without_name(self):
        with pytest.raises(ValueError, match="Action 1, tool call 0 is missing a \"name\""):
            ScriptedWorker([{"content": "ok"}, {"tool_calls": [{"arguments": {"command": "ls"}}]}])

    def test_non_object_action(self):
        with pytest.raises(ValueError, match="Action 0 must be an object"):
            action_from_dict("bash", 0)

    @pytest.mark.asyncio
    async def test_replay_then_final(self):
        worker = ScriptedWorker([Action(content="first"), {"content": "second"}], final_content="end")
        assert (await worker.propose([])).content == "first"
        assert (await worker.propose([])).content == "second"
        final = await worker.propose([])
        assert final.content == "end"
        assert final.is_final
        assert worker.calls == 3


class TestLLMWorker:
    """Prompts the model with history and tools"""

    @pytest.mark.asyncio
    async def test_propose_with_tool_calls(self):
        reply = Message.from_tool_calls([ToolCall(id="c1", capability_name="bash", arguments='{"command": "ls"}')])
        llm = FakeLLM(reply)
        tools = [{"type": "function", "function": {"name": "bash"}}]
        worker = LLMWorker(llm, "gpt-4o-mini", tools_provider=lambda: tools, max_tokens=100)

        action = await worker.propose([Message.user("list files")])

        assert not action.is_final
        assert action.tool_calls[0].capability_name == "bash"
        call = llm.calls[0]
        assert call["model"] == "gpt-4o-mini"
        assert call["tools"] == tools
        assert call["max_tokens"] == 100
        assert call["messages"][0] == {"role": "system", "content": PLANNING_SYSTEM_PROMPT}
        assert call["messages"][1] == {"role": "user", "content": "list files"}
        assert call["messages"][-1] == {"role": "user", "content": NEXT_STEP_PROMPT}

    @pytest.mark.asyncio
    async def test_final_answer_without_tools(self):
        llm = FakeLLM(Message.assistant("42"))
        worker = LLMWorker(llm, "m", system_prompt="custom", next_step_prompt=None)

        action = await worker.propose([Message.user("q")])

        assert action.is_final
        assert action.content == "42"
        assert llm.calls[0]["tools"] is None
        assert llm.calls[0]["messages"] == [
            {"role": "system", "content": "custom"},
            {"role": "user", "content": "q"},
        ]

    @pytest.mark.asyncio
    async def test_llm_errors_propagate(self):
        llm = FakeLLM(None)
        llm.complete = AsyncMock(side_effect=RuntimeError("rate limited"))
        worker = LLMWorker(llm, "m")
        with pytest.raises(RuntimeError):
            await worker.propose([])


class TestWorkerRegistry:
    """Named worker variants"""

    def test_builtin_variants(self):
        registry = get_worker_registry()
        assert registry.names() == ["llm", "scripted"]
        assert registry.get("llm") is LLMWorker
        assert get_worker_registry() is registry

    def test_create(self):
        worker = get_worker_registry().create("scripted", actions=[{"content": "x"}])
        assert isinstance(worker, ScriptedWorker)
        assert len(worker.actions) == 1

    def test_create_unknown(self):
        with pytest.raises(KeyError):
            WorkerRegistry().create("ghost")

    def test_register_requires_worker_subclass(self):
        registry = WorkerRegistry()
        with pytest.raises(TypeError):
            registry.register("bad", dict)
        with pytest.raises(TypeError):
            registry.register("bad", ScriptedWorker())

    def test_register_custom_worker(self):
        class EchoWorker(Worker):
            name = "echo"

            async def propose(self, history):
                return Action(content=history[-1].content if history else "")

        registry = WorkerRegistry()
        registry.register("echo", EchoWorker)
        assert isinstance(registry.create("echo"), EchoWorker)
