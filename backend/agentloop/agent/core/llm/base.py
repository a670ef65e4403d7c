from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..runtime.models import Message


class ProviderNotConfigured(Exception):
    """The model provider cannot be used yet, e.g. OPENAI_API_KEY is unset."""


class ProviderError(Exception):
    """A completion request reached the provider and failed there."""


class BaseLLMClient(ABC):
    """One-shot tool-calling chat completion against some model provider.

    The worker owns prompting and the agent owns dispatch; a client only
    turns provider-format messages into the next assistant Message.
    """

    @abstractmethod
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
        """Return the assistant message, including any proposed tool calls."""
        raise NotImplementedError
