"""LLM provider clients."""

from llm.base import LLMClient, LLMEmptyResponseError
from llm.openrouter import OpenRouterClient

__all__ = ["LLMClient", "LLMEmptyResponseError", "OpenRouterClient"]
