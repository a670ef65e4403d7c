"""
Tests for the planning tool
"""

import pytest

from agentloop.agent.core.runtime.models import FailureKind
from agentloop.agent.workflows.plan_manager import PlanManager, StepStatus
from agentloop.agent.tools.planning_tool import PlanningTool


@pytest.fixture
def tool():
    return PlanningTool(PlanManager())


class TestPlanningTool:
    """Planning commands over a shared PlanManager"""

    def test_tool_properties(self, tool):
        assert tool.name == "planning"
        params = tool.parameters
        assert params["type"] == "object"
        assert params["required"] == ["command"]
        assert "step_status" in params["properties"]

    @pytest.mark.asyncio
    async def test_create_and_get(self, tool):
        result = await tool.execute(command="create", plan_id="p1", title="Ship it", steps=["a", "b"])
        assert result.success is True
        assert result.data.startswith("Plan created successfully with ID: p1")

        result = await tool.execute(command="get")
        assert "Plan: Ship it (ID: p1)" in result.data

    @pytest.mark.asyncio
    async def test_duplicate_create_fails(self, tool):
        await tool.execute(command="create", plan_id="p1", title="Ship it", steps=["a"])
        result = await tool.execute(command="create", plan_id="p1", title="Ship it", steps=["a"])
        assert result.success is False
        assert "already exists" in result.error

    @pytest.mark.asyncio
    async def test_list(self, tool):
        result = await tool.execute(command="list")
        assert result.data == "No plans available. Create a plan with the 'create' command."

        await tool.execute(command="create", plan_id="p1", title="Ship it", steps=["a", "b"])
        result = await tool.execute(command="list")
        assert "• p1 (active): Ship it - 0/2 steps completed" in result.data

    @pytest.mark.asyncio
    async def test_mark_step(self, tool):
        await tool.execute(command="create", plan_id="p1", title="Ship it", steps=["a", "b"])
        result = await tool.execute(
            command="mark_step", plan_id="p1", step_index=0, step_status=StepStatus.COMPLETED, step_notes="done"
        )
        assert result.success is True
        assert result.data.startswith("Step 0 updated in plan 'p1'.")
        step = tool.plan_manager.get_plan("p1").get_steps()[0]
        assert step.status == StepStatus.COMPLETED
        assert step.notes == "done"

    @pytest.mark.asyncio
    async def test_mark_step_requires_index(self, tool):
        await tool.execute(command="create", plan_id="p1", title="Ship it", steps=["a"])
        result = await tool.execute(command="mark_step", plan_id="p1", step_status=StepStatus.COMPLETED)
        assert result.success is False
        assert "step_index" in result.error

    @pytest.mark.asyncio
    async def test_mark_step_out_of_range(self, tool):
        await tool.execute(command="create", plan_id="p1", title="Ship it", steps=["a"])
        result = await tool.execute(command="mark_step", plan_id="p1", step_index=5, step_status=StepStatus.COMPLETED)
        assert result.success is False

    @pytest.mark.asyncio
    async def test_update_set_active_delete(self, tool):
        await tool.execute(command="create", plan_id="p1", title="One", steps=["a"])
        await tool.execute(command="create", plan_id="p2", title="Two", steps=["b"])

        result = await tool.execute(command="update", plan_id="p1", steps=["a", "c"])
        assert result.data.startswith("Plan updated successfully: p1")

        result = await tool.execute(command="set_active", plan_id="p1")
        assert result.success is True
        assert tool.plan_manager.active_plan_id == "p1"

        result = await tool.execute(command="delete", plan_id="p1")
        assert result.data == "Plan 'p1' has been deleted."
        result = await tool.execute(command="get", plan_id="p1")
        assert result.success is False
        assert "No plan found" in result.error

    @pytest.mark.asyncio
    async def test_unknown_command(self, tool):
        result = await tool.execute(command="explode")
        assert result.success is False
        assert "Unrecognized command" in result.error
        assert result.kind == FailureKind.validation_error

    @pytest.mark.asyncio
    async def test_plan_errors_carry_validation_kind(self, tool):
        result = await tool.execute(command="create", title="t", steps=["a"])
        assert result.success is False
        assert result.kind == FailureKind.validation_error

        result = await tool.execute(command="get", plan_id="ghost")
        assert result.kind == FailureKind.validation_error

    def test_validate_arguments_rejects_bad_status(self, tool):
        from pydantic import ValidationError as PydanticValidationError

        with pytest.raises(PydanticValidationError):
            tool.validate_arguments({"command": "mark_step", "step_index": 0, "step_status": "done"})

    def test_validate_arguments_coerces_status(self, tool):
        args = tool.validate_arguments({"command": "mark_step", "step_index": 0, "step_status": "blocked"})
        assert args["step_status"] == StepStatus.BLOCKED
        assert "plan_id" not in args
