"""
Terminate tool: ends the current run
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

from ..session import ExecutionSession
from .base_tool import BaseTool, ToolResult

DEFAULT_REASON = "Task completed"


class TerminateArguments(BaseModel):
    # Anything goes: terminate must never fail validation
    model_config = ConfigDict(extra="allow")

    reason: Any = Field(DEFAULT_REASON, description="Why execution is being terminated")


class TerminateTool(BaseTool):
    """Tool the worker calls when the task is complete or cannot continue"""

    args_model = TerminateArguments

    def __init__(self, session: ExecutionSession):
        super().__init__()
        self.name = "terminate"
        self.description = "Terminate the current run when the task is complete or cannot be continued."
        self.session = session

    def validate_arguments(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        reason = (arguments or {}).get("reason")
        return {"reason": DEFAULT_REASON if reason is None or reason == "" else str(reason)}

    async def execute(self, **kwargs) -> ToolResult:
        reason = kwargs.get("reason")
        reason = DEFAULT_REASON if reason is None or reason == "" else str(reason)
        return ToolResult(success=True, data=self.session.terminate(reason))
