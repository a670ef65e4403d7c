"""
Worker interface

A worker looks at the conversation so far and proposes the next action:
either a final answer or one or more capability calls. Workers never
dispatch anything themselves; the ToolCallAgent does that.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

from ..core.runtime.models import Message, ToolCall


@dataclass(frozen=True)
class Action:
    """What a worker proposes for the next step"""
    content: Optional[str] = None
    tool_calls: Tuple[ToolCall, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.tool_calls, tuple):
            object.__setattr__(self, "tool_calls", tuple(self.tool_calls or ()))

    @property
    def is_final(self) -> bool:
        return not self.tool_calls

    def to_message(self) -> Message:
        if self.tool_calls:
            return Message.from_tool_calls(self.tool_calls, content=self.content)
        return Message.assistant(self.content)

    @classmethod
    def from_message(cls, message: Message) -> "Action":
        return cls(content=message.content, tool_calls=message.tool_calls)


class Worker(ABC):
    """Closed interface every worker variant implements"""

    name: str = "worker"

    @abstractmethod
    async def propose(self, history: Sequence[Message]) -> Action:
        """Propose the next action given the conversation history"""
        pass
