"""LLM integration.

Provider variants share one ``complete(prompt) -> str`` capability and are
selected from the configured model id:
  - ``gpt-*``, ``o1-*``, ``o3-*``, ``o4-*``: OpenAI (chat completion shape)
  - ``vendor/model``: OpenRouter (OpenAI-compatible)
  - anything else: Gemini (generate content shape)
"""

from .base import LlmProvider, ProviderKind, resolve_provider_kind
from .gateway import LlmGateway
from .gemini import GeminiProvider
from .openai import OpenAIProvider, OpenRouterProvider

__all__ = [
    "LlmProvider",
    "ProviderKind",
    "resolve_provider_kind",
    "LlmGateway",
    "GeminiProvider",
    "OpenAIProvider",
    "OpenRouterProvider",
]
