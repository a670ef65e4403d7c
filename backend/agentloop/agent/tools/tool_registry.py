"""
Per-session table of the built-in tools, keyed by tool name
"""

from typing import Dict, Iterator, List, Optional

from .base_tool import BaseTool


class ToolRegistry:
    """Name-to-tool table backing the built-in capability service"""

    def __init__(self):
        self._tools: Dict[str, BaseTool] = {}

    def register(self, tool: BaseTool) -> None:
        """Add a tool; a later tool with the same name replaces the earlier one"""
        if not tool.name:
            raise ValueError(f"{type(tool).__name__} has no name")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[BaseTool]:
        return self._tools.get(name)

    def all(self) -> List[BaseTool]:
        """Tools in registration order"""
        return list(self._tools.values())

    def names(self) -> List[str]:
        return list(self._tools)

    def __iter__(self) -> Iterator[BaseTool]:
        return iter(self.all())

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
