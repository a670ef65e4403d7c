"""
Planning tool: lets the worker create and track plans

Commands operate on the session's shared PlanManager, so a plan the worker
rewrites here is the same plan the planning flow reconciles.
"""

import logging
from typing import List, Literal, Optional

from pydantic import Field

from ..core.runtime.models import FailureKind
from ..exceptions import PlanError, ValidationError
from ..workflows.plan_manager import PlanManager, StepStatus
from .base_tool import BaseTool, ToolArguments, ToolResult

logger = logging.getLogger(__name__)

COMMANDS = ("create", "update", "list", "get", "set_active", "mark_step", "delete")


class PlanningArguments(ToolArguments):
    command: Literal["create", "update", "list", "get", "set_active", "mark_step", "delete"] = Field(
        description="The command to execute"
    )
    plan_id: Optional[str] = Field(
        None,
        description="Plan identifier. Required for create, update, set_active and delete; "
                    "get and mark_step fall back to the active plan.",
    )
    title: Optional[str] = Field(None, description="Plan title (create, update)")
    steps: Optional[List[str]] = Field(None, description="Step descriptions (create, update)")
    step_index: Optional[int] = Field(None, description="0-based step index (mark_step)")
    step_status: Optional[StepStatus] = Field(None, description="New step status (mark_step)")
    step_notes: Optional[str] = Field(None, description="Notes for the step (mark_step)")


class PlanningTool(BaseTool):
    """Tool for creating, updating and tracking plans"""

    args_model = PlanningArguments

    def __init__(self, plan_manager: Optional[PlanManager] = None):
        super().__init__()
        self.name = "planning"
        self.description = (
            "Create and manage plans for solving complex tasks. "
            "Commands: " + ", ".join(COMMANDS) + "."
        )
        self.plan_manager = plan_manager or PlanManager()

    async def execute(self, **kwargs) -> ToolResult:
        command = kwargs.get("command")
        plan_id = kwargs.get("plan_id")
        manager = self.plan_manager
        try:
            if command == "create":
                plan = manager.create_plan(plan_id, kwargs.get("title"), kwargs.get("steps") or [])
                return ToolResult(success=True, data=f"Plan created successfully with ID: {plan.plan_id}\n\n{plan.format()}")

            if command == "update":
                plan = manager.update_plan(plan_id, kwargs.get("title"), kwargs.get("steps"))
                return ToolResult(success=True, data=f"Plan updated successfully: {plan.plan_id}\n\n{plan.format()}")

            if command == "list":
                return ToolResult(success=True, data=self._format_list())

            if command == "get":
                return ToolResult(success=True, data=manager.get_plan(plan_id).format())

            if command == "set_active":
                plan = manager.set_active(plan_id)
                return ToolResult(success=True, data=f"Plan '{plan.plan_id}' is now the active plan.\n\n{plan.format()}")

            if command == "mark_step":
                step_index = kwargs.get("step_index")
                if step_index is None:
                    raise ValidationError("Parameter `step_index` is required for command: mark_step")
                plan = manager.mark_step(plan_id, step_index, kwargs.get("step_status"), kwargs.get("step_notes"))
                return ToolResult(success=True, data=f"Step {step_index} updated in plan '{plan.plan_id}'.\n\n{plan.format()}")

            if command == "delete":
                manager.delete_plan(plan_id)
                return ToolResult(success=True, data=f"Plan '{plan_id}' has been deleted.")

            return ToolResult(
                success=False,
                error=f"Unrecognized command: {command}. Allowed commands are: {', '.join(COMMANDS)}",
                kind=FailureKind.validation_error,
            )
        except (PlanError, ValidationError) as e:
            logger.info(f"Planning command {command} rejected: {e}")
            return ToolResult(success=False, error=str(e), kind=e.kind)

    def _format_list(self) -> str:
        plans = self.plan_manager.list_plans()
        if not plans:
            return "No plans available. Create a plan with the 'create' command."
        active = self.plan_manager.active_plan_id
        lines = ["Available plans:"]
        for plan in plans:
            counts = plan.progress()
            marker = " (active)" if plan.plan_id == active else ""
            lines.append(
                f"• {plan.plan_id}{marker}: {plan.title} - "
                f"{counts[StepStatus.COMPLETED.value]}/{counts['total']} steps completed"
            )
        return "\n".join(lines)
