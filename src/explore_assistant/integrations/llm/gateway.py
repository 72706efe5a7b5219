"""LLM gateway: resolves the provider once, then dispatches completions."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Callable, Dict, Optional

from ...core.errors import MissingCredentialError
from .base import LlmProvider, ProviderKind
from .gemini import GeminiProvider
from .openai import OpenAIProvider, OpenRouterProvider

if TYPE_CHECKING:
    from ...config import ConfigResolver, LlmConfig

logger = logging.getLogger(__name__)

ProviderFactory = Callable[["LlmConfig"], LlmProvider]


def _default_factories() -> Dict[ProviderKind, ProviderFactory]:
    return {
        ProviderKind.GEMINI: lambda c: GeminiProvider(model=c.model, api_key=c.api_key),
        ProviderKind.OPENAI: lambda c: OpenAIProvider(model=c.model, api_key=c.api_key),
        ProviderKind.OPENROUTER: lambda c: OpenRouterProvider(
            model=c.model, api_key=c.api_key
        ),
    }


class LlmGateway:
    """Single ``complete(prompt)`` entry point for the pipeline.

    The provider variant is resolved from configuration on first use and kept
    for the rest of the session; call ``reset()`` after changing settings.
    No automatic retries: upstream failures propagate to the caller.
    """

    def __init__(
        self,
        config_resolver: "ConfigResolver",
        provider_factories: Optional[Dict[ProviderKind, ProviderFactory]] = None,
    ):
        self.config_resolver = config_resolver
        self._factories = _default_factories()
        if provider_factories:
            self._factories.update(provider_factories)
        self._provider: Optional[LlmProvider] = None
        self._lock = asyncio.Lock()

    async def provider(self) -> LlmProvider:
        """Return the resolved provider, resolving configuration if needed.

        Raises:
            MissingCredentialError: if no API key is configured
        """
        if self._provider is not None:
            return self._provider
        async with self._lock:
            if self._provider is None:
                config = await self.config_resolver.resolve()
                if not config.has_credential:
                    raise MissingCredentialError(
                        "API key not configured. Please set the 'api_key' "
                        "user attribute or a local API key."
                    )
                self._provider = self._factories[config.provider](config)
                logger.info(
                    "Using provider %s with model %s",
                    config.provider.value,
                    config.model,
                )
        return self._provider

    async def complete(self, prompt: str) -> str:
        provider = await self.provider()
        return await provider.complete(prompt)

    async def reset(self) -> None:
        """Forget the resolved provider so the next call re-reads settings."""
        provider, self._provider = self._provider, None
        if provider is not None:
            await provider.aclose()
