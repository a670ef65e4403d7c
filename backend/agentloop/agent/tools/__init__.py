"""
Built-in tools package
"""

from typing import Optional

from .base_tool import BaseTool, ToolArguments, ToolResult
from .tool_registry import ToolRegistry
from .bash_tool import BashTool
from .file_operators_tool import FileOperatorsTool
from .system_info_tool import SystemInfoTool
from .str_replace_editor_tool import StrReplaceEditorTool
from .planning_tool import PlanningTool
from .terminate_tool import TerminateTool
from ..session import ExecutionSession
from ..workflows.plan_manager import PlanManager

__all__ = [
    "BaseTool",
    "ToolArguments",
    "ToolResult",
    "ToolRegistry",
    "BashTool",
    "FileOperatorsTool",
    "SystemInfoTool",
    "StrReplaceEditorTool",
    "PlanningTool",
    "TerminateTool",
    "build_system_tools",
]


def build_system_tools(
    session: ExecutionSession,
    plan_manager: Optional[PlanManager] = None,
    workspace_root: Optional[str] = None,
    bash_timeout_ms: Optional[int] = None,
) -> ToolRegistry:
    """
    Build the fixed tool set of the built-in service.

    Tools are created per session because terminate is bound to the
    session's flag and planning to the session's plans.
    """
    registry = ToolRegistry()
    registry.register(BashTool(default_timeout_ms=bash_timeout_ms, default_cwd=workspace_root))
    registry.register(FileOperatorsTool(workspace_root=workspace_root))
    registry.register(SystemInfoTool())
    registry.register(StrReplaceEditorTool(workspace_root=workspace_root))
    registry.register(PlanningTool(plan_manager))
    registry.register(TerminateTool(session))
    return registry
