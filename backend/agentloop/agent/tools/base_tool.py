"""
Base tool interface for built-in capabilities
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel, ConfigDict

from ..core.runtime.models import FailureKind


@dataclass
class ToolResult:
    """Result of tool execution"""
    success: bool
    data: Any = None
    error: Optional[str] = None
    # Failure category; the dispatcher treats None as an execution error
    kind: Optional[FailureKind] = None


class ToolArguments(BaseModel):
    """Base argument model; unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid")


class BaseTool(ABC):
    """Base class for all built-in tools

    Subclasses declare their argument shape as a pydantic model in
    ``args_model``. The dispatcher validates against it before ``execute``
    is called, so ``execute`` receives already-checked keyword arguments.
    """

    args_model: Type[BaseModel] = ToolArguments

    def __init__(self):
        """Initialize tool with required properties"""
        self.name: str = ""
        self.description: str = ""

    @property
    def parameters(self) -> Dict[str, Any]:
        """JSON schema of the tool arguments"""
        schema = self.args_model.model_json_schema()
        schema.pop("title", None)
        schema.setdefault("properties", {})
        return schema

    def validate_arguments(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """Validate raw arguments; raises pydantic.ValidationError"""
        model = self.args_model.model_validate(arguments or {})
        return model.model_dump(exclude_none=True)

    @abstractmethod
    async def execute(self, **kwargs) -> ToolResult:
        """Execute the tool with given parameters"""
        pass

    def to_openai_function(self) -> Dict[str, Any]:
        """Convert tool to OpenAI function calling format"""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters
        }
