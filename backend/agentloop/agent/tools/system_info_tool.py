"""
System information tool for the built-in service
"""

import json
import logging
import os
import platform
import socket
from typing import Any, Dict, Literal, Optional

import psutil
from pydantic import Field

from ...utils.logging import sanitize_dict
from .base_tool import BaseTool, ToolArguments, ToolResult

logger = logging.getLogger(__name__)


class SystemInfoArguments(ToolArguments):
    info_type: Literal["os", "arch", "platform", "env", "cpu", "memory", "network", "all"] = Field(
        "all", description="Kind of information to return"
    )
    env_var: Optional[str] = Field(None, description="Single environment variable to read (env only)")


def _os_info() -> Dict[str, Any]:
    return {
        "system": platform.system(),
        "release": platform.release(),
        "version": platform.version(),
        "hostname": socket.gethostname(),
        "python": platform.python_version(),
    }


def _cpu_info() -> Dict[str, Any]:
    # interval=None compares against the previous call instead of blocking
    return {
        "count": psutil.cpu_count(),
        "physical_count": psutil.cpu_count(logical=False),
        "processor": platform.processor() or platform.machine(),
        "percent": psutil.cpu_percent(interval=None),
        "load_average": list(psutil.getloadavg()),
    }


def _memory_info() -> Dict[str, Any]:
    mem = psutil.virtual_memory()
    return {
        "total_bytes": int(mem.total),
        "available_bytes": int(mem.available),
        "used_bytes": int(mem.used),
        "used_pct": round(float(mem.percent), 2),
    }


def _network_info() -> Dict[str, Any]:
    hostname = socket.gethostname()
    try:
        addresses = sorted({info[4][0] for info in socket.getaddrinfo(hostname, None)})
    except socket.gaierror:
        addresses = []
    return {"hostname": hostname, "addresses": addresses}


def _env_info(env_var: Optional[str]) -> Dict[str, Any]:
    if env_var:
        return sanitize_dict({env_var: os.environ.get(env_var)})
    return sanitize_dict(dict(os.environ))


class SystemInfoTool(BaseTool):
    """Tool reporting facts about the host environment"""

    args_model = SystemInfoArguments

    def __init__(self):
        super().__init__()
        self.name = "system_info"
        self.description = "Get information about the host: os, arch, platform, env, cpu, memory, network or all"

    async def execute(self, **kwargs) -> ToolResult:
        info_type = kwargs.get("info_type", "all")
        logger.info(f"Collecting system info: {info_type}")
        try:
            if info_type == "os":
                result = _os_info()
            elif info_type == "arch":
                result = {"architecture": platform.machine()}
            elif info_type == "platform":
                result = {"platform": platform.platform()}
            elif info_type == "env":
                result = _env_info(kwargs.get("env_var"))
            elif info_type == "cpu":
                result = _cpu_info()
            elif info_type == "memory":
                result = _memory_info()
            elif info_type == "network":
                result = _network_info()
            else:
                result = {
                    "os": _os_info(),
                    "architecture": platform.machine(),
                    "platform": platform.platform(),
                    "cpu": _cpu_info(),
                    "memory": _memory_info(),
                    "network": _network_info(),
                }
            return ToolResult(success=True, data=json.dumps(result, indent=2, default=str))
        except Exception as e:
            logger.error(f"Failed to collect system info ({info_type}): {e}")
            return ToolResult(success=False, error=f"Failed to get system info: {e}")
