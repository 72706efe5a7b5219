"""LLM provider interface and provider selection."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum


class ProviderKind(str, Enum):
    GEMINI = "gemini"
    OPENAI = "openai"
    OPENROUTER = "openrouter"


_OPENAI_PREFIXES = ("gpt-", "o1-", "o3-", "o4-")


def resolve_provider_kind(model_name: str) -> ProviderKind:
    """Pick the provider from the model id alone.

    ``gpt-*`` and the ``o*-`` reasoning models go to OpenAI, ``vendor/model``
    ids to OpenRouter, everything else to Gemini.
    """
    name = (model_name or "").strip().lower()
    if name.startswith(_OPENAI_PREFIXES):
        return ProviderKind.OPENAI
    if "/" in name:
        return ProviderKind.OPENROUTER
    return ProviderKind.GEMINI


class LlmProvider(ABC):
    """One provider variant: a prompt in, the completion text out."""

    kind: ProviderKind

    def __init__(self, model: str):
        self.model = model

    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """Send a single-turn prompt and return the completion text.

        Raises:
            UpstreamServiceError: if the provider returns a non-success result
        """
        pass

    async def aclose(self) -> None:
        """Release any held connections."""
        return None
