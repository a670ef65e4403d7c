"""
Tests for the base tool, the tool registry and the built-in tool set
"""

import pytest

from agentloop.agent.session import ExecutionSession
from agentloop.agent.tools import BaseTool, ToolRegistry, ToolResult, build_system_tools


class EchoTool(BaseTool):
    def __init__(self, name="echo"):
        super().__init__()
        self.name = name
        self.description = "Echo back"

    async def execute(self, **kwargs) -> ToolResult:
        return ToolResult(success=True, data=kwargs)


class TestBaseTool:
    """Schema and OpenAI function format"""

    def test_default_parameters(self):
        params = EchoTool().parameters
        assert params["type"] == "object"
        assert params["properties"] == {}
        assert "title" not in params

    def test_to_openai_function(self):
        fn = EchoTool().to_openai_function()
        assert fn["name"] == "echo"
        assert fn["description"] == "Echo back"
        assert fn["parameters"]["type"] == "object"

    def test_cannot_instantiate_abstract(self):
        with pytest.raises(TypeError):
            BaseTool()


class TestToolRegistry:
    """Registration and lookup"""

    def test_register_and_get(self):
        registry = ToolRegistry()
        tool = EchoTool()
        registry.register(tool)
        assert registry.get("echo") is tool
        assert "echo" in registry
        assert len(registry) == 1
        assert registry.names() == ["echo"]
        assert registry.all() == [tool]

    def test_register_requires_name(self):
        with pytest.raises(ValueError):
            ToolRegistry().register(EchoTool(name=""))

    def test_get_missing(self):
        assert ToolRegistry().get("nope") is None


class TestBuildSystemTools:
    """The fixed built-in tool set"""

    def test_tool_names(self, tmp_path):
        registry = build_system_tools(ExecutionSession(), workspace_root=str(tmp_path), bash_timeout_ms=5000)
        assert registry.names() == [
            "bash", "file_operators", "system_info", "str_replace_editor", "planning", "terminate"
        ]
        assert registry.get("bash").default_timeout_ms == 5000

    def test_terminate_bound_to_session(self):
        session = ExecutionSession()
        registry = build_system_tools(session)
        assert registry.get("terminate").session is session
