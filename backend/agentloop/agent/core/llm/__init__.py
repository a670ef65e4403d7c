from .base import BaseLLMClient, ProviderError, ProviderNotConfigured
from .openai_client import OpenAIClientAdapter

__all__ = ["BaseLLMClient", "ProviderError", "ProviderNotConfigured", "OpenAIClientAdapter"]
