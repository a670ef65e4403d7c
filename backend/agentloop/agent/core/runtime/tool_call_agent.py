from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence, Tuple

from ...agents.base_worker import Action, Worker
from ...exceptions import ValidationError
from ...memory.memory import Memory
from ...registry.capability_registry import CapabilityRegistry
from ...session import ExecutionSession
from .message_utils import ensure_tool_call_integrity
from .models import CapabilityResult, Message, ToolCall

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 10
DEFAULT_DUPLICATE_THRESHOLD = 2


class ToolCallAgent:
    """Drives one turn: the worker proposes, the registry dispatches, memory records.

    The turn ends on a final answer, a terminate call, the step limit or
    when the conversation starts repeating itself. Worker exceptions are not
    caught here; the planning flow turns them into a recovery step.
    """

    def __init__(
        self,
        worker: Worker,
        registry: CapabilityRegistry,
        memory: Optional[Memory] = None,
        session: Optional[ExecutionSession] = None,
        max_steps: int = DEFAULT_MAX_STEPS,
        duplicate_threshold: int = DEFAULT_DUPLICATE_THRESHOLD,
    ) -> None:
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        self.worker = worker
        self.registry = registry
        self.memory = memory if memory is not None else Memory()
        self.session = session or registry.session
        self.max_steps = max_steps
        self.duplicate_threshold = duplicate_threshold
        self.current_step = 0

    async def run(self, request: Optional[str] = None) -> str:
        self.current_step = 0
        if request:
            self.memory.add_message(Message.user(request))
        logger.info(f"{self.worker.name} starting turn" + (f": {request}" if request else ""))

        final: Optional[str] = None
        try:
            while self.current_step < self.max_steps:
                self.current_step += 1
                logger.info(f"{self.worker.name} executing step {self.current_step}/{self.max_steps}")

                history = ensure_tool_call_integrity(self.memory.get_messages())
                action = await self.worker.propose(history)
                self.memory.add_message(action.to_message())

                if action.is_final:
                    self.session.check_and_terminate("worker proposed no capability calls")
                    final = action.content or "Task completed"
                    break

                await self._act(action)

                if self.session.terminated:
                    final = self.session.termination_reason
                    break

                if self.is_stuck():
                    logger.warning(f"{self.worker.name} appears stuck in a loop; stopping")
                    final = "Terminated: the agent was repeating itself"
                    break
            else:
                logger.warning(f"{self.worker.name} reached max steps ({self.max_steps})")
                final = f"Terminated: reached max steps ({self.max_steps})"
        finally:
            self.session.set_executing(False)

        return final or "Task completed"

    async def _act(self, action: Action) -> Sequence[Tuple[ToolCall, CapabilityResult]]:
        self.session.set_executing(True)
        try:
            results = await asyncio.gather(*(self._dispatch(tc) for tc in action.tool_calls))
        finally:
            self.session.set_executing(False)

        for tool_call, result in results:
            if not result.success:
                logger.info(f"Capability {tool_call.capability_name} failed: {result.error}")
            self.memory.add_message(
                Message.tool(result.to_text(), tool_call_id=tool_call.id, name=tool_call.capability_name)
            )
        return results

    async def _dispatch(self, tool_call: ToolCall) -> Tuple[ToolCall, CapabilityResult]:
        service, capability = self.registry.resolve_tool_name(tool_call.capability_name)
        try:
            arguments = tool_call.parse_arguments()
        except ValidationError as e:
            return tool_call, CapabilityResult.from_exception(e)
        return tool_call, await self.registry.call_tool(service, capability, arguments)

    def is_stuck(self) -> bool:
        """True when the last window of messages repeats the window before it."""
        window = self.duplicate_threshold
        recent = self.memory.get_recent_messages(window * 2)
        if len(recent) < window * 2:
            return False

        def key(m: Message):
            return (m.role, m.content, tuple((tc.capability_name, tc.arguments) for tc in m.tool_calls))

        first, second = recent[:window], recent[window:]
        return all(key(a) == key(b) for a, b in zip(first, second))
