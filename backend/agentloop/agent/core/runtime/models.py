from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple


class Role(str, Enum):
    system = "system"
    user = "user"
    assistant = "assistant"
    tool = "tool"


class FailureKind(str, Enum):
    validation_error = "validation_error"
    execution_error = "execution_error"
    service_unavailable = "service_unavailable"
    capability_not_found = "capability_not_found"


@dataclass(frozen=True)
class ToolCall:
    """A capability call proposed by a worker.

    ``arguments`` stays in its serialized JSON form until the dispatcher
    needs it, which mirrors what chat-completion providers send back.
    """

    id: str
    capability_name: str
    arguments: str = "{}"

    def parse_arguments(self) -> Dict[str, Any]:
        # Imported lazily; exceptions depends on this module for FailureKind
        from ...exceptions import ValidationError

        raw = self.arguments.strip() if isinstance(self.arguments, str) else self.arguments
        if not raw:
            return {}
        try:
            parsed = json.loads(raw) if isinstance(raw, str) else raw
        except json.JSONDecodeError as e:
            raise ValidationError(
                f"Arguments for '{self.capability_name}' are not valid JSON: {e}"
            ) from e
        if not isinstance(parsed, dict):
            raise ValidationError(
                f"Arguments for '{self.capability_name}' must be a JSON object"
            )
        return parsed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.capability_name, "arguments": self.arguments},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolCall":
        function = data.get("function") or {}
        arguments = function.get("arguments", "{}")
        if not isinstance(arguments, str):
            arguments = json.dumps(arguments)
        return cls(id=data.get("id", ""), capability_name=function.get("name", ""), arguments=arguments)


@dataclass(frozen=True)
class Message:
    """One conversation turn. Never mutated after creation."""

    role: Role
    content: Optional[str] = None
    tool_calls: Tuple[ToolCall, ...] = field(default_factory=tuple)
    tool_call_id: Optional[str] = None
    name: Optional[str] = None
    base64_image: Optional[str] = None

    def __post_init__(self) -> None:
        # Accept lists from callers while keeping the stored value immutable
        if not isinstance(self.tool_calls, tuple):
            object.__setattr__(self, "tool_calls", tuple(self.tool_calls or ()))
        if not isinstance(self.role, Role):
            object.__setattr__(self, "role", Role(self.role))

    @classmethod
    def user(cls, content: str, base64_image: Optional[str] = None) -> "Message":
        return cls(role=Role.user, content=content, base64_image=base64_image)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.system, content=content)

    @classmethod
    def assistant(cls, content: Optional[str] = None) -> "Message":
        return cls(role=Role.assistant, content=content)

    @classmethod
    def tool(
        cls,
        content: str,
        tool_call_id: str,
        name: Optional[str] = None,
        base64_image: Optional[str] = None,
    ) -> "Message":
        return cls(
            role=Role.tool,
            content=content,
            tool_call_id=tool_call_id,
            name=name,
            base64_image=base64_image,
        )

    @classmethod
    def from_tool_calls(cls, tool_calls: Sequence[ToolCall], content: Optional[str] = None) -> "Message":
        return cls(role=Role.assistant, content=content, tool_calls=tuple(tool_calls))

    def to_dict(self) -> Dict[str, Any]:
        """Render in the OpenAI chat-completions message format."""
        data: Dict[str, Any] = {"role": self.role.value}
        if self.role == Role.user and self.base64_image:
            parts = []
            if self.content:
                parts.append({"type": "text", "text": self.content})
            parts.append({
                "type": "image_url",
                "image_url": {"url": f"data:image/png;base64,{self.base64_image}"},
            })
            data["content"] = parts
        else:
            data["content"] = self.content
        if self.tool_calls:
            data["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
        if self.tool_call_id:
            data["tool_call_id"] = self.tool_call_id
        if self.name:
            data["name"] = self.name
        return data


@dataclass(frozen=True)
class CapabilityResult:
    """Normalized outcome of a capability call: exactly one of output or error."""

    output: Optional[str] = None
    error: Optional[str] = None
    kind: Optional[FailureKind] = None

    def __post_init__(self) -> None:
        if (self.output is None) == (self.error is None):
            raise ValueError("CapabilityResult requires exactly one of output or error")
        if self.output is not None and self.kind is not None:
            raise ValueError("Successful CapabilityResult cannot carry a failure kind")
        if self.error is not None and self.kind is None:
            object.__setattr__(self, "kind", FailureKind.execution_error)

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, output: Any) -> "CapabilityResult":
        if output is None:
            output = ""
        elif not isinstance(output, str):
            output = json.dumps(output, default=str) if isinstance(output, (dict, list)) else str(output)
        return cls(output=output)

    @classmethod
    def fail(cls, error: str, kind: FailureKind = FailureKind.execution_error) -> "CapabilityResult":
        return cls(error=error or "Unknown error", kind=kind)

    @classmethod
    def from_exception(cls, exc: BaseException) -> "CapabilityResult":
        kind = getattr(exc, "kind", FailureKind.execution_error)
        return cls.fail(str(exc) or type(exc).__name__, kind)

    def to_text(self) -> str:
        """Text form appended to memory as a tool message."""
        if self.success:
            return self.output or ""
        return f"Error ({self.kind.value}): {self.error}"

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"output": self.output}
        return {"error": self.error, "kind": self.kind.value}
