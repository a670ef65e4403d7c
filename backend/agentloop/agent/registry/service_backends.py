"""
Service backends for the capability registry.

Every backend answers the same questions: is it reachable (probe), which
capabilities does it expose, are these arguments acceptable (validate) and
what happened when a capability ran (invoke, returning a ToolResult rather
than raising).

Remote services speak the JSON-RPC 2.0 subset of the Model Context Protocol
used for tool calls: ``initialize``, ``notifications/initialized``,
``tools/list`` and ``tools/call``. HTTP services are reached with httpx;
stdio services are spawned as subprocesses exchanging one JSON document per
line.
"""

import asyncio
import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as SchemaValidationError

from ..exceptions import ExecutionError, ValidationError
from ..tools.base_tool import ToolResult
from ..tools.tool_registry import ToolRegistry
from .schema import validate_against_schema

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2025-03-26"
CLIENT_INFO = {"name": "agentloop", "version": "0.1.0"}


@dataclass(frozen=True)
class CapabilitySpec:
    """Name, description and JSON-schema argument shape of one capability"""
    name: str
    description: str = ""
    parameters: Dict[str, Any] = field(default_factory=dict)

    def to_openai_tool(self, exposed_name: Optional[str] = None) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": exposed_name or self.name,
                "description": self.description,
                "parameters": self.parameters or {"type": "object", "properties": {}},
            },
        }


class ServiceBackend(ABC):
    """A named collection of capabilities"""

    builtin = False

    def __init__(self, name: str, description: str = "", priority: int = 1):
        self.name = name
        self.description = description
        self.priority = priority

    @abstractmethod
    async def probe(self) -> bool:
        """Check reachability and load capabilities; never raises"""

    @abstractmethod
    def capabilities(self) -> Dict[str, CapabilitySpec]:
        pass

    @abstractmethod
    def validate(self, capability: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """Return checked arguments or raise ValidationError"""

    @abstractmethod
    async def invoke(self, capability: str, arguments: Dict[str, Any]) -> ToolResult:
        pass

    async def close(self) -> None:
        return None


def _format_pydantic_errors(exc: SchemaValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "arguments"
        parts.append(f"{loc}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts)


class BuiltinServiceBackend(ServiceBackend):
    """The fixed in-process service backed by a ToolRegistry"""

    builtin = True

    def __init__(self, name: str, tools: ToolRegistry, description: str = "Built-in system tools"):
        # Highest priority so it wins capability-name ties
        super().__init__(name, description, priority=1_000_000)
        self.tools = tools

    async def probe(self) -> bool:
        return True

    def capabilities(self) -> Dict[str, CapabilitySpec]:
        return {
            tool.name: CapabilitySpec(tool.name, tool.description, tool.parameters)
            for tool in self.tools.all()
        }

    def validate(self, capability: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        tool = self.tools.get(capability)
        if tool is None:
            raise ValidationError(f"Unknown capability '{capability}'", service=self.name, capability=capability)
        try:
            return tool.validate_arguments(arguments)
        except SchemaValidationError as e:
            raise ValidationError(
                f"Invalid arguments for '{capability}': {_format_pydantic_errors(e)}",
                service=self.name,
                capability=capability,
            ) from e

    async def invoke(self, capability: str, arguments: Dict[str, Any]) -> ToolResult:
        tool = self.tools.get(capability)
        if tool is None:
            return ToolResult(success=False, error=f"Tool {capability} not found")
        return await tool.execute(**arguments)


class UnavailableServiceBackend(ServiceBackend):
    """Placeholder for a configured service that cannot be reached at all"""

    def __init__(self, name: str, reason: str, priority: int = 1):
        super().__init__(name, reason, priority)
        self.reason = reason

    async def probe(self) -> bool:
        logger.warning(f"Service {self.name} unavailable: {self.reason}")
        return False

    def capabilities(self) -> Dict[str, CapabilitySpec]:
        return {}

    def validate(self, capability: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return arguments

    async def invoke(self, capability: str, arguments: Dict[str, Any]) -> ToolResult:
        return ToolResult(success=False, error=self.reason)


def _tool_result_from_mcp(result: Any) -> ToolResult:
    """Normalize a ``tools/call`` result into a ToolResult"""
    if not isinstance(result, dict):
        return ToolResult(success=True, data="" if result is None else str(result))
    chunks: List[str] = []
    for item in result.get("content") or []:
        if isinstance(item, dict) and item.get("type") == "text":
            chunks.append(str(item.get("text", "")))
        elif isinstance(item, dict):
            chunks.append(f"[{item.get('type', 'unknown')} content]")
    text = "\n".join(chunks)
    if not text and "structuredContent" in result:
        text = json.dumps(result["structuredContent"], default=str)
    if result.get("isError"):
        return ToolResult(success=False, error=text or "Remote tool reported an error")
    return ToolResult(success=True, data=text)


class JsonRpcServiceBackend(ServiceBackend):
    """Shared MCP tool-call logic; subclasses provide the transport"""

    def __init__(self, name: str, description: str = "", priority: int = 1, timeout: float = 30.0):
        super().__init__(name, description, priority)
        self.timeout = timeout
        self._capabilities: Dict[str, CapabilitySpec] = {}
        self._next_id = 0

    @abstractmethod
    async def _send(self, payload: Dict[str, Any], expect_response: bool = True) -> Optional[Dict[str, Any]]:
        pass

    async def _request(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        self._next_id += 1
        payload = {"jsonrpc": "2.0", "id": self._next_id, "method": method, "params": params or {}}
        response = await self._send(payload)
        if response is None:
            raise ExecutionError(f"{self.name}: no response to {method}", service=self.name)
        if "error" in response and response["error"]:
            err = response["error"]
            message = err.get("message") if isinstance(err, dict) else str(err)
            raise ExecutionError(f"{self.name}: {method} failed: {message}", service=self.name)
        return response.get("result")

    async def _notify(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        payload: Dict[str, Any] = {"jsonrpc": "2.0", "method": method}
        if params:
            payload["params"] = params
        await self._send(payload, expect_response=False)

    async def probe(self) -> bool:
        try:
            await self._request("initialize", {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {},
                "clientInfo": CLIENT_INFO,
            })
            await self._notify("notifications/initialized")
            listing = await self._request("tools/list")
        except Exception as e:
            logger.warning(f"Service {self.name} failed its probe: {e}")
            return False

        tools = (listing or {}).get("tools") or []
        self._capabilities = {}
        for tool in tools:
            if not isinstance(tool, dict) or not tool.get("name"):
                continue
            self._capabilities[tool["name"]] = CapabilitySpec(
                name=tool["name"],
                description=tool.get("description") or "",
                parameters=tool.get("inputSchema") or tool.get("parameters") or {},
            )
        logger.info(f"Service {self.name} is available with {len(self._capabilities)} capabilit(ies)")
        return True

    def capabilities(self) -> Dict[str, CapabilitySpec]:
        return dict(self._capabilities)

    def validate(self, capability: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
        spec = self._capabilities.get(capability)
        schema = spec.parameters if spec else {}
        try:
            return validate_against_schema(capability, schema, arguments)
        except ValidationError as e:
            e.service = self.name
            raise

    async def invoke(self, capability: str, arguments: Dict[str, Any]) -> ToolResult:
        result = await self._request("tools/call", {"name": capability, "arguments": arguments})
        return _tool_result_from_mcp(result)


class HttpServiceBackend(JsonRpcServiceBackend):
    """MCP service reached over HTTP POST"""

    def __init__(
        self,
        name: str,
        url: str,
        description: str = "",
        priority: int = 1,
        timeout: float = 30.0,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(name, description, priority, timeout)
        self.url = url
        self.headers = headers or {}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._session_id: Optional[str] = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json, text/event-stream",
                    **self.headers,
                },
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def _send(self, payload: Dict[str, Any], expect_response: bool = True) -> Optional[Dict[str, Any]]:
        client = await self._ensure_client()
        headers = {"Mcp-Session-Id": self._session_id} if self._session_id else None
        try:
            response = await client.post(self.url, json=payload, headers=headers)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise ExecutionError(f"{self.name}: request timed out after {self.timeout}s", service=self.name) from e
        except httpx.HTTPError as e:
            raise ExecutionError(f"{self.name}: HTTP error: {e}", service=self.name) from e

        session_id = response.headers.get("mcp-session-id")
        if session_id:
            self._session_id = session_id
        if not expect_response or not response.content:
            return None
        if "text/event-stream" in response.headers.get("content-type", ""):
            return self._parse_event_stream(response.text, payload.get("id"))
        return response.json()

    @staticmethod
    def _parse_event_stream(body: str, request_id: Any) -> Optional[Dict[str, Any]]:
        for line in body.splitlines():
            if not line.startswith("data:"):
                continue
            try:
                message = json.loads(line[5:].strip())
            except json.JSONDecodeError:
                continue
            if isinstance(message, dict) and message.get("id") == request_id:
                return message
        return None

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class StdioServiceBackend(JsonRpcServiceBackend):
    """MCP service spawned as a subprocess speaking line-delimited JSON"""

    def __init__(
        self,
        name: str,
        command: str,
        args: Optional[List[str]] = None,
        env: Optional[Dict[str, str]] = None,
        description: str = "",
        priority: int = 1,
        timeout: float = 30.0,
    ):
        super().__init__(name, description, priority, timeout)
        self.command = command
        self.args = list(args or [])
        self.env = dict(env or {})
        self._process: Optional[asyncio.subprocess.Process] = None
        self._io_lock = asyncio.Lock()

    async def _ensure_process(self) -> asyncio.subprocess.Process:
        if self._process is None or self._process.returncode is not None:
            try:
                self._process = await asyncio.create_subprocess_exec(
                    self.command,
                    *self.args,
                    stdin=asyncio.subprocess.PIPE,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.DEVNULL,
                    env={**os.environ, **self.env},
                )
            except OSError as e:
                raise ExecutionError(f"{self.name}: failed to start '{self.command}': {e}", service=self.name) from e
            logger.info(f"Started stdio service {self.name} (pid {self._process.pid})")
        return self._process

    async def _send(self, payload: Dict[str, Any], expect_response: bool = True) -> Optional[Dict[str, Any]]:
        async with self._io_lock:
            process = await self._ensure_process()
            process.stdin.write((json.dumps(payload) + "\n").encode("utf-8"))
            await process.stdin.drain()
            if not expect_response:
                return None
            try:
                return await asyncio.wait_for(self._read_response(process, payload["id"]), timeout=self.timeout)
            except asyncio.TimeoutError as e:
                raise ExecutionError(
                    f"{self.name}: no response to {payload['method']} within {self.timeout}s", service=self.name
                ) from e

    async def _read_response(self, process: asyncio.subprocess.Process, request_id: int) -> Dict[str, Any]:
        while True:
            line = await process.stdout.readline()
            if not line:
                raise ExecutionError(f"{self.name}: process closed its output", service=self.name)
            try:
                message = json.loads(line)
            except json.JSONDecodeError:
                logger.debug(f"{self.name}: ignoring non-JSON output line")
                continue
            # Server notifications and log lines carry no matching id
            if isinstance(message, dict) and message.get("id") == request_id:
                return message

    async def close(self) -> None:
        process, self._process = self._process, None
        if process is None or process.returncode is not None:
            return
        try:
            process.terminate()
            await asyncio.wait_for(process.wait(), timeout=5)
        except ProcessLookupError:
            pass
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
        logger.info(f"Stopped stdio service {self.name}")
