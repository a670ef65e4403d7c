"""
Tests for session memory
"""

import threading

import pytest

from agentloop.agent.core.runtime.models import Message
from agentloop.agent.memory import Memory


class TestMemoryDedup:
    """Tool results are applied at most once"""

    def test_duplicate_tool_call_id_is_dropped(self):
        memory = Memory()
        assert memory.add_message(Message.tool("first", tool_call_id="x")) is True
        assert memory.add_message(Message.tool("second", tool_call_id="x")) is False

        messages = memory.get_messages()
        assert len(messages) == 1
        assert messages[0].content == "first"
        assert memory.has_tool_result("x")

    def test_messages_without_tool_call_id_are_never_deduplicated(self):
        memory = Memory()
        memory.add_message(Message.user("hi"))
        memory.add_message(Message.user("hi"))
        assert len(memory) == 2

    def test_add_messages_counts_accepted(self):
        memory = Memory()
        accepted = memory.add_messages([
            Message.tool("a", tool_call_id="1"),
            Message.tool("b", tool_call_id="2"),
            Message.tool("c", tool_call_id="1"),
        ])
        assert accepted == 2

    def test_concurrent_duplicates_keep_one(self):
        memory = Memory()
        barrier = threading.Barrier(8)

        def add():
            barrier.wait()
            memory.add_message(Message.tool("result", tool_call_id="same"))

        threads = [threading.Thread(target=add) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(memory) == 1


class TestMemoryRetention:
    """Clearing keeps the most recent messages"""

    def test_clear_keeps_retention_floor(self):
        memory = Memory(retention_floor=3)
        for i in range(10):
            memory.add_message(Message.user(f"m{i}"))

        memory.clear()

        assert [m.content for m in memory.get_messages()] == ["m7", "m8", "m9"]

    def test_clear_below_floor_keeps_everything(self):
        memory = Memory(retention_floor=5)
        memory.add_message(Message.user("only"))
        memory.clear()
        assert len(memory) == 1

    def test_clear_resets_applied_ids(self):
        memory = Memory(retention_floor=0)
        memory.add_message(Message.tool("a", tool_call_id="x"))
        memory.clear()
        assert len(memory) == 0
        assert memory.add_message(Message.tool("again", tool_call_id="x")) is True

    def test_max_messages_trims_oldest(self):
        memory = Memory(max_messages=2)
        for i in range(4):
            memory.add_message(Message.user(f"m{i}"))
        assert [m.content for m in memory.get_messages()] == ["m2", "m3"]

    def test_recent_messages(self):
        memory = Memory()
        for i in range(4):
            memory.add_message(Message.user(f"m{i}"))
        assert [m.content for m in memory.get_recent_messages(2)] == ["m2", "m3"]
        assert memory.get_recent_messages(0) == ()

    def test_invalid_settings(self):
        with pytest.raises(ValueError):
            Memory(retention_floor=-1)
        with pytest.raises(ValueError):
            Memory(max_messages=0)

    def test_to_dict_list(self):
        memory = Memory()
        memory.add_message(Message.user("hi"))
        assert memory.to_dict_list() == [{"role": "user", "content": "hi"}]
