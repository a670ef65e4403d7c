"""
Shell command tool for the built-in service

Runs one command through the system shell. Standard output is the result;
standard error on a successful command is only logged. Non-zero exit,
spawn errors and timeouts come back as failed ToolResults.
"""

import asyncio
import logging
import os
import signal
from typing import Optional

from pydantic import Field, field_validator

from .base_tool import BaseTool, ToolArguments, ToolResult

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 120_000


class BashArguments(ToolArguments):
    command: str = Field(description="Shell command to execute")
    cwd: Optional[str] = Field(None, description="Working directory for the command")
    timeout_ms: Optional[int] = Field(None, gt=0, description="Hard timeout in milliseconds")

    @field_validator("command")
    @classmethod
    def command_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("command cannot be empty")
        return v


class BashTool(BaseTool):
    """Tool for executing shell commands"""

    args_model = BashArguments

    def __init__(self, default_timeout_ms: Optional[int] = None, default_cwd: Optional[str] = None):
        super().__init__()
        self.name = "bash"
        self.description = (
            "Execute a shell command. Returns standard output; a non-zero exit "
            "code or timeout is reported as an error."
        )
        self.default_timeout_ms = default_timeout_ms or DEFAULT_TIMEOUT_MS
        self.default_cwd = default_cwd

    async def execute(self, **kwargs) -> ToolResult:
        """Execute the shell command"""
        command = kwargs.get("command")
        if not command or not str(command).strip():
            return ToolResult(success=False, error="command is required")

        cwd = kwargs.get("cwd") or self.default_cwd
        timeout_ms = kwargs.get("timeout_ms") or self.default_timeout_ms

        if cwd and not os.path.isdir(cwd):
            return ToolResult(success=False, error=f"Working directory does not exist: {cwd}")

        logger.info(f"Executing command: {command}" + (f" (cwd={cwd})" if cwd else ""))
        try:
            process = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
                # Own process group, so a timeout can take down every child too
                start_new_session=True,
            )
        except Exception as e:
            logger.error(f"Failed to start command {command!r}: {e}")
            return ToolResult(success=False, error=f"Failed to execute command: {str(e)}")

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            await self._kill(process)
            logger.warning(f"Command timed out after {timeout_ms} ms: {command}")
            return ToolResult(success=False, error=f"Command timed out after {timeout_ms} ms")

        out = stdout.decode("utf-8", errors="replace") if stdout else ""
        err = stderr.decode("utf-8", errors="replace") if stderr else ""

        if process.returncode != 0:
            detail = err.strip() or out.strip() or "no output"
            return ToolResult(
                success=False,
                error=f"Command failed with exit code {process.returncode}: {detail}",
                data={"status": process.returncode, "output": out},
            )

        if err.strip():
            logger.warning(f"Command wrote to stderr: {err.strip()[:500]}")
        return ToolResult(success=True, data=out)

    async def _kill(self, process) -> None:
        try:
            if hasattr(os, "killpg"):
                os.killpg(process.pid, signal.SIGKILL)
            else:
                process.kill()
        except ProcessLookupError:
            return
        except PermissionError as e:
            logger.warning(f"Could not kill process group {process.pid}: {e}")
            process.kill()
        try:
            await asyncio.wait_for(process.wait(), timeout=5)
        except asyncio.TimeoutError:
            logger.error(f"Process {process.pid} did not exit after kill")
