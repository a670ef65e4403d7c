"""
Tests for the capability registry and dispatcher
"""

import json

import httpx
import pytest

from agentloop.agent.core.runtime.models import FailureKind
from agentloop.agent.registry import BUILTIN_SERVICE, CapabilityRegistry, HttpServiceBackend
from agentloop.agent.session import ExecutionSession
from agentloop.agent.workflows.plan_manager import PlanManager
from agentloop.services.config_service import ServiceConfig


SEARCH_SCHEMA = {
    "type": "object",
    "properties": {"query": {"type": "string"}},
    "required": ["query"],
    "additionalProperties": False,
}


def mcp_handler(request: httpx.Request) -> httpx.Response:
    """Minimal MCP tool server"""
    body = json.loads(request.content)
    if "id" not in body:
        return httpx.Response(202)
    method = body["method"]
    if method == "initialize":
        result = {"protocolVersion": "2025-03-26", "capabilities": {"tools": {}}, "serverInfo": {"name": "web"}}
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result},
                              headers={"Mcp-Session-Id": "abc"})
    if method == "tools/list":
        result = {"tools": [
            {"name": "search", "description": "Search the web", "inputSchema": SEARCH_SCHEMA},
            {"name": "broken", "description": "Always fails", "inputSchema": {"type": "object"}},
        ]}
    elif method == "tools/call":
        assert request.headers.get("mcp-session-id") == "abc"
        name = body["params"]["name"]
        if name == "broken":
            result = {"content": [{"type": "text", "text": "upstream exploded"}], "isError": True}
        else:
            result = {"content": [{"type": "text", "text": f"results for {body['params']['arguments']['query']}"}]}
    else:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32601, "message": "nope"}})
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


def failing_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(503, text="service down")


async def make_registry(session=None, plan_manager=None, configs=()):
    registry = CapabilityRegistry(session or ExecutionSession(), plan_manager=plan_manager)
    await registry.initialize(configs)
    return registry


class TestRegistryQueries:
    """Registration and read-only queries"""

    @pytest.mark.asyncio
    async def test_builtin_service_registered(self):
        registry = await make_registry()

        service = registry.get_service(BUILTIN_SERVICE)
        assert service.available is True
        assert service.builtin is True
        assert set(service.capabilities) == {
            "bash", "file_operators", "system_info", "str_replace_editor", "planning", "terminate"
        }
        assert registry.is_service_available(BUILTIN_SERVICE)
        assert not registry.is_service_available("ghost")
        assert registry.get_service("ghost") is None

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self):
        registry = await make_registry()
        await registry.initialize()
        assert len(registry.get_all_services()) == 1

    @pytest.mark.asyncio
    async def test_http_service_available(self):
        registry = await make_registry()
        await registry.register_backend(
            HttpServiceBackend("web", "http://mcp.test/mcp", priority=5, transport=httpx.MockTransport(mcp_handler))
        )

        assert registry.is_service_available("web")
        assert [s.name for s in registry.get_available_services()] == [BUILTIN_SERVICE, "web"]
        tools = registry.get_all_available_tools()
        assert [c.name for c in tools["web"]] == ["search", "broken"]
        assert registry.find_service_for("search") == "web"
        assert registry.find_service_for("bash") == BUILTIN_SERVICE
        assert registry.find_service_for("nothing") is None
        await registry.shutdown()

    @pytest.mark.asyncio
    async def test_probe_failure_registers_unavailable(self):
        registry = await make_registry()
        descriptor = await registry.register_backend(
            HttpServiceBackend("down", "http://down.test/mcp", transport=httpx.MockTransport(failing_handler))
        )

        assert descriptor.available is False
        assert registry.get_service("down") is not None
        assert "down" not in [s.name for s in registry.get_available_services()]
        assert "down" not in registry.get_all_available_tools()
        await registry.shutdown()

    @pytest.mark.asyncio
    async def test_configured_services(self):
        configs = [
            ServiceConfig(name="ghost", type="stdio", command="/nonexistent/agentloop-test-binary"),
            ServiceConfig(name="socket", type="websocket", priority=3),
            ServiceConfig(name="off", type="http", url="http://off.test", enabled=False),
            ServiceConfig(name=BUILTIN_SERVICE, type="http", url="http://shadow.test"),
        ]
        registry = await make_registry(configs=configs)

        names = sorted(s.name for s in registry.get_all_services())
        assert names == ["ghost", "socket", BUILTIN_SERVICE]
        assert not registry.is_service_available("ghost")
        assert not registry.is_service_available("socket")
        assert registry.get_service(BUILTIN_SERVICE).builtin is True
        await registry.shutdown()

    @pytest.mark.asyncio
    async def test_invalid_service_entries_registered_unavailable(self):
        registry = CapabilityRegistry(ExecutionSession())
        await registry.initialize([], invalid_services={"bad": "requires a url", BUILTIN_SERVICE: "shadow"})

        descriptor = registry.get_service("bad")
        assert descriptor is not None
        assert descriptor.available is False
        assert "requires a url" in descriptor.description
        assert registry.get_service(BUILTIN_SERVICE).available is True

        result = await registry.call_tool("bad", "anything", {})
        assert result.kind == FailureKind.service_unavailable

    @pytest.mark.asyncio
    async def test_tool_names_round_trip(self):
        registry = await make_registry()
        await registry.register_backend(
            HttpServiceBackend("web", "http://mcp.test/mcp", transport=httpx.MockTransport(mcp_handler))
        )

        names = [t["function"]["name"] for t in registry.to_openai_tools()]
        assert "bash" in names
        assert "web__search" in names
        assert registry.resolve_tool_name("web__search") == ("web", "search")
        assert registry.resolve_tool_name("bash") == (BUILTIN_SERVICE, "bash")
        assert registry.resolve_tool_name("search") == ("web", "search")
        assert registry.resolve_tool_name("mystery") == (BUILTIN_SERVICE, "mystery")
        await registry.shutdown()

    @pytest.mark.asyncio
    async def test_descriptor_to_dict(self):
        registry = await make_registry()
        data = registry.get_service(BUILTIN_SERVICE).to_dict()
        assert data["name"] == BUILTIN_SERVICE
        assert data["available"] is True
        assert "bash" in data["capabilities"]


class TestCallTool:
    """Dispatch never raises; every outcome is a CapabilityResult"""

    @pytest.mark.asyncio
    async def test_unknown_service(self):
        registry = await make_registry()
        result = await registry.call_tool("nonexistent", "x", {})
        assert result.success is False
        assert result.kind == FailureKind.service_unavailable

    @pytest.mark.asyncio
    async def test_unknown_capability(self):
        registry = await make_registry()
        result = await registry.call_tool(BUILTIN_SERVICE, "teleport", {})
        assert result.kind == FailureKind.capability_not_found

    @pytest.mark.asyncio
    async def test_invalid_arguments(self):
        registry = await make_registry()
        result = await registry.call_tool(BUILTIN_SERVICE, "bash", {})
        assert result.kind == FailureKind.validation_error
        assert "command" in result.error

    @pytest.mark.asyncio
    async def test_bash_echo(self):
        registry = await make_registry()
        result = await registry.call_tool(BUILTIN_SERVICE, "bash", {"command": 'echo "hi"'})
        assert result.success is True
        assert result.output.strip() == "hi"

    @pytest.mark.asyncio
    async def test_bash_exit_code(self):
        registry = await make_registry()
        result = await registry.call_tool(BUILTIN_SERVICE, "bash", {"command": "exit 1"})
        assert result.success is False
        assert result.kind == FailureKind.execution_error
        assert result.error

    @pytest.mark.asyncio
    async def test_terminate_through_registry(self):
        session = ExecutionSession()
        registry = await make_registry(session=session)
        result = await registry.call_tool(BUILTIN_SERVICE, "terminate", {"reason": "done"})
        assert result.output == "done"
        assert session.terminated is True

    @pytest.mark.asyncio
    async def test_planning_shares_plan_manager(self):
        plan_manager = PlanManager()
        registry = await make_registry(plan_manager=plan_manager)
        result = await registry.call_tool(
            BUILTIN_SERVICE, "planning", {"command": "create", "plan_id": "p1", "title": "T", "steps": ["a"]}
        )
        assert result.success is True
        assert plan_manager.get_plan("p1").title == "T"

    @pytest.mark.asyncio
    async def test_planning_errors_keep_validation_kind(self):
        registry = await make_registry()

        missing_id = await registry.call_tool(
            BUILTIN_SERVICE, "planning", {"command": "create", "title": "t", "steps": ["a"]}
        )
        assert missing_id.kind == FailureKind.validation_error
        assert "plan_id" in missing_id.error

        unknown_plan = await registry.call_tool(BUILTIN_SERVICE, "planning", {"command": "get", "plan_id": "nope"})
        assert unknown_plan.kind == FailureKind.validation_error
        assert "No plan found" in unknown_plan.error

    @pytest.mark.asyncio
    async def test_remote_call(self):
        registry = await make_registry()
        await registry.register_backend(
            HttpServiceBackend("web", "http://mcp.test/mcp", transport=httpx.MockTransport(mcp_handler))
        )

        ok = await registry.call_tool("web", "search", {"query": "cats"})
        assert ok.output == "results for cats"

        bad_type = await registry.call_tool("web", "search", {"query": 3})
        assert bad_type.kind == FailureKind.validation_error

        extra = await registry.call_tool("web", "search", {"query": "x", "page": 2})
        assert extra.kind == FailureKind.validation_error

        missing = await registry.call_tool("web", "search", {})
        assert missing.kind == FailureKind.validation_error

        remote_error = await registry.call_tool("web", "broken", {})
        assert remote_error.kind == FailureKind.execution_error
        assert remote_error.error == "upstream exploded"
        await registry.shutdown()

    @pytest.mark.asyncio
    async def test_unavailable_service(self):
        registry = await make_registry()
        await registry.register_backend(
            HttpServiceBackend("down", "http://down.test/mcp", transport=httpx.MockTransport(failing_handler))
        )
        result = await registry.call_tool("down", "search", {"query": "x"})
        assert result.kind == FailureKind.service_unavailable
        await registry.shutdown()

    @pytest.mark.asyncio
    async def test_shutdown_is_idempotent(self):
        registry = await make_registry()
        await registry.shutdown()
        await registry.shutdown()
        result = await registry.call_tool(BUILTIN_SERVICE, "bash", {"command": "true"})
        assert result.kind == FailureKind.service_unavailable
