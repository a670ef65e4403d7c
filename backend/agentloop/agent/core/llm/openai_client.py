from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import openai

from .base import BaseLLMClient, ProviderError, ProviderNotConfigured
from ..runtime.models import Message, ToolCall
from ...clients import get_openai_client

logger = logging.getLogger(__name__)

# Reasoning models reject max_tokens and take max_completion_tokens instead
_COMPLETION_TOKEN_PREFIXES = ("o1", "o3", "o4", "gpt-5")


def get_openai_token_param(model: str, max_tokens: int) -> Dict[str, int]:
    if model.lower().startswith(_COMPLETION_TOKEN_PREFIXES):
        return {"max_completion_tokens": max_tokens}
    return {"max_tokens": max_tokens}


class OpenAIClientAdapter(BaseLLMClient):
    """Adapter over the OpenAI SDK chat-completions API."""

    def __init__(self, base_url: Optional[str] = None) -> None:
        self.base_url = base_url
        self._client = None

    def _get_client(self):
        if self._client is None:
            try:
                self._client = get_openai_client(self.base_url)
            except ValueError as e:
                # Normalize to ProviderNotConfigured for runtime consistency
                raise ProviderNotConfigured(str(e)) from e
        return self._client

    async def complete(
        self,
        *,
        model: str,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        tool_choice: str = "auto",
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> Message:
        client = self._get_client()
        params: Dict[str, Any] = {"model": model, "messages": messages}
        if tools:
            params["tools"] = tools
            params["tool_choice"] = tool_choice
        if max_tokens is not None:
            params.update(get_openai_token_param(model, max_tokens))
        if temperature is not None:
            params["temperature"] = temperature

        try:
            response = await client.chat.completions.create(**params)
        except openai.OpenAIError as e:
            logger.error(f"OpenAI request failed: {e}")
            raise ProviderError(str(e)) from e

        if not response.choices:
            raise ProviderError("OpenAI returned no choices")
        choice = response.choices[0].message
        tool_calls = [
            ToolCall(id=tc.id, capability_name=tc.function.name, arguments=tc.function.arguments or "{}")
            for tc in (choice.tool_calls or [])
            if getattr(tc, "function", None) is not None
        ]
        if tool_calls:
            return Message.from_tool_calls(tool_calls, content=choice.content)
        return Message.assistant(choice.content)
