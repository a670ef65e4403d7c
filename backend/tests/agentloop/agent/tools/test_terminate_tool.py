"""
Tests for the terminate tool
"""

import pytest

from agentloop.agent.session import ExecutionSession
from agentloop.agent.tools.terminate_tool import TerminateTool


class TestTerminateTool:
    """terminate ends the run on its session only"""

    def test_validation_never_fails(self):
        tool = TerminateTool(ExecutionSession())
        assert tool.validate_arguments({}) == {"reason": "Task completed"}
        assert tool.validate_arguments({"reason": 42, "extra": True}) == {"reason": "42"}
        assert tool.validate_arguments(None) == {"reason": "Task completed"}

    @pytest.mark.asyncio
    async def test_execute_terminates_session(self):
        session = ExecutionSession()
        session.set_executing(True)
        tool = TerminateTool(session)

        result = await tool.execute(reason="goal reached")

        assert result.success is True
        assert result.data == "goal reached"
        assert session.terminated is True
        assert session.executing is False

    @pytest.mark.asyncio
    async def test_other_sessions_untouched(self):
        mine, other = ExecutionSession(), ExecutionSession()
        await TerminateTool(mine).execute()
        assert mine.termination_reason == "Task completed"
        assert other.terminated is False
