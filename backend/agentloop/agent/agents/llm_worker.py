"""
LLM-backed worker using chat-completions tool calling
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..core.llm.base import BaseLLMClient
from ..core.runtime.message_utils import build_request_messages
from ..core.runtime.models import Message
from .base_worker import Action, Worker

logger = logging.getLogger(__name__)

PLANNING_SYSTEM_PROMPT = """\
You are an expert planning agent that solves problems efficiently through structured plans.
Your job is to:
1. Analyze the request to understand the scope of the task
2. Create a clear, actionable plan with the `planning` tool
3. Execute the steps with the available tools
4. Track progress and adjust the plan when needed
5. Call `terminate` as soon as the task is complete

Break tasks into logical steps with clear outcomes. Avoid excessive detail.
Know when to stop: once the goal is met, do not keep thinking."""

NEXT_STEP_PROMPT = """\
Based on the current state, what is your next action?
Is the plan sufficient? Can you execute the next step right away?
If the task is complete, call `terminate` immediately."""


class LLMWorker(Worker):
    """Asks a chat model for the next action, offering the registry's tools"""

    name = "llm"

    def __init__(
        self,
        llm: BaseLLMClient,
        model: str,
        tools_provider: Optional[Callable[[], List[Dict[str, Any]]]] = None,
        system_prompt: Optional[str] = None,
        next_step_prompt: Optional[str] = NEXT_STEP_PROMPT,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> None:
        self.llm = llm
        self.model = model
        self.tools_provider = tools_provider
        self.system_prompt = system_prompt or PLANNING_SYSTEM_PROMPT
        self.next_step_prompt = next_step_prompt
        self.max_tokens = max_tokens
        self.temperature = temperature

    async def propose(self, history: Sequence[Message]) -> Action:
        messages = build_request_messages(history, self.system_prompt, self.next_step_prompt)
        tools = self.tools_provider() if self.tools_provider else None
        reply = await self.llm.complete(
            model=self.model,
            messages=messages,
            tools=tools or None,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )
        action = Action.from_message(reply)
        if action.tool_calls:
            logger.info(
                f"{self.model} selected {len(action.tool_calls)} tool(s): "
                + ", ".join(tc.capability_name for tc in action.tool_calls)
            )
        else:
            logger.info(f"{self.model} answered without tool calls")
        return action
