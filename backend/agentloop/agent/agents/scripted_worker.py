"""
Scripted worker: replays a fixed list of actions

Useful for dry runs from the CLI and for exercising the loop without a model.
"""

import json
from typing import Any, Dict, Iterable, List, Sequence, Union

from ..core.runtime.models import Message, ToolCall
from .base_worker import Action, Worker

DEFAULT_FINAL_CONTENT = "Done"


def action_from_dict(data: Dict[str, Any], index: int = 0) -> Action:
    """
    Build an Action from ``{"content": ..., "tool_calls": [{"name", "arguments", "id"?}]}``

    Raises ValueError naming the action index when the entry is malformed.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Action {index} must be an object, got {type(data).__name__}")
    calls = []
    for j, call in enumerate(data.get("tool_calls") or []):
        if not isinstance(call, dict) or not call.get("name"):
            raise ValueError(f"Action {index}, tool call {j} is missing a \"name\"")
        arguments = call.get("arguments", {})
        if not isinstance(arguments, str):
            arguments = json.dumps(arguments)
        calls.append(ToolCall(
            id=call.get("id") or f"scripted_{index}_{j}",
            capability_name=str(call["name"]),
            arguments=arguments,
        ))
    return Action(content=data.get("content"), tool_calls=tuple(calls))


class ScriptedWorker(Worker):
    """Returns its actions in order, then a final answer"""

    name = "scripted"

    def __init__(self, actions: Iterable[Union[Action, Dict[str, Any]]] = (), final_content: str = DEFAULT_FINAL_CONTENT):
        self.actions: List[Action] = [
            a if isinstance(a, Action) else action_from_dict(a, i) for i, a in enumerate(actions)
        ]
        self.final_content = final_content
        self.calls = 0

    async def propose(self, history: Sequence[Message]) -> Action:
        index = self.calls
        self.calls += 1
        if index < len(self.actions):
            return self.actions[index]
        return Action(content=self.final_content)
