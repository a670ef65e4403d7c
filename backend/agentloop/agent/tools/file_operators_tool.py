"""
File operations tool for the built-in service
"""

import logging
import os
from pathlib import Path
from typing import Literal, Optional

import aiofiles
from pydantic import Field

from .base_tool import BaseTool, ToolArguments, ToolResult

logger = logging.getLogger(__name__)


class FileOperatorsArguments(ToolArguments):
    operation: Literal["read", "write", "list", "exists", "mkdir"] = Field(
        description="File operation to perform"
    )
    path: str = Field(description="File or directory path; relative paths resolve against the workspace root")
    content: Optional[str] = Field(None, description="Content to write (write only)")
    encoding: str = Field("utf-8", description="Text encoding")
    recursive: bool = Field(False, description="Create parent directories (mkdir only)")


class FileOperatorsTool(BaseTool):
    """Tool for reading, writing and inspecting files"""

    args_model = FileOperatorsArguments

    def __init__(self, workspace_root: Optional[str] = None):
        super().__init__()
        self.name = "file_operators"
        self.description = "Read, write, list, check existence of, or create files and directories"
        self.workspace_root = Path(workspace_root or os.getcwd())

    def _resolve(self, raw_path: str) -> Path:
        path = Path(raw_path).expanduser()
        if not path.is_absolute():
            path = self.workspace_root / path
        return path

    async def execute(self, **kwargs) -> ToolResult:
        operation = kwargs.get("operation")
        raw_path = kwargs.get("path")
        if not raw_path:
            return ToolResult(success=False, error="path is required")
        path = self._resolve(raw_path)
        encoding = kwargs.get("encoding") or "utf-8"

        try:
            if operation == "read":
                if not path.is_file():
                    return ToolResult(success=False, error=f"File not found: {path}")
                async with aiofiles.open(path, "r", encoding=encoding) as f:
                    return ToolResult(success=True, data=await f.read())

            if operation == "write":
                content = kwargs.get("content")
                if content is None:
                    return ToolResult(success=False, error="content is required for write")
                path.parent.mkdir(parents=True, exist_ok=True)
                async with aiofiles.open(path, "w", encoding=encoding) as f:
                    await f.write(content)
                logger.info(f"Wrote {len(content)} chars to {path}")
                return ToolResult(success=True, data=f"Wrote {len(content)} characters to {path}")

            if operation == "list":
                if not path.is_dir():
                    return ToolResult(success=False, error=f"Directory not found: {path}")
                entries = sorted(
                    entry.name + ("/" if entry.is_dir() else "") for entry in path.iterdir()
                )
                return ToolResult(success=True, data="\n".join(entries))

            if operation == "exists":
                return ToolResult(success=True, data="true" if path.exists() else "false")

            if operation == "mkdir":
                path.mkdir(parents=bool(kwargs.get("recursive")), exist_ok=True)
                return ToolResult(success=True, data=f"Directory ready: {path}")

            return ToolResult(success=False, error=f"Unsupported operation: {operation}")

        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"File operation {operation} failed for {path}: {e}")
            return ToolResult(success=False, error=f"File operation '{operation}' failed: {e}")
