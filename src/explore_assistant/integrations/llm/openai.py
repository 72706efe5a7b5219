"""Chat-completion providers built on the async OpenAI SDK.

OpenRouter speaks the same protocol; its variant only changes the base URL and
adds the HTTP-Referer / X-Title headers OpenRouter uses to identify apps.
Relevant environment: OPENROUTER_BASE_URL, OPENROUTER_HTTP_REFERER,
OPENROUTER_APP_TITLE.
"""

from __future__ import annotations

import os
from typing import Any, Dict, Optional

import openai

from ...core.errors import UpstreamServiceError
from .base import LlmProvider, ProviderKind


class OpenAIProvider(LlmProvider):
    """OpenAI chat-completions provider (bearer token auth).

    Args:
        model: Model id (e.g., "gpt-4o-mini").
        api_key: API key.
        base_url: Custom base URL (optional).
        extra_client_kwargs: Extra kwargs forwarded to ``openai.AsyncOpenAI()``.
    """

    kind = ProviderKind.OPENAI
    service_name = "openai"

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        **extra_client_kwargs: Any,
    ) -> None:
        super().__init__(model)
        client_kwargs: Dict[str, Any] = {"api_key": api_key, **extra_client_kwargs}
        if base_url:
            client_kwargs["base_url"] = base_url
        self._client = openai.AsyncOpenAI(**client_kwargs)

    async def complete(self, prompt: str) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
            )
        except openai.APIStatusError as e:
            raise UpstreamServiceError(
                f"{self.service_name} API error: {e.message}",
                status=e.status_code,
                service=self.service_name,
            ) from e
        except openai.APIError as e:
            raise UpstreamServiceError(
                f"{self.service_name} request failed: {e}",
                service=self.service_name,
            ) from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""

    async def aclose(self) -> None:
        await self._client.close()


def _identification_headers(
    http_referer: Optional[str], app_title: Optional[str]
) -> Dict[str, str]:
    headers: Dict[str, str] = {}
    if http_referer:
        headers["HTTP-Referer"] = http_referer
    if app_title:
        headers["X-Title"] = app_title
    return headers


class OpenRouterProvider(OpenAIProvider):
    """OpenAI-compatible provider pointed at OpenRouter.

    Explicit arguments win over the ``OPENROUTER_*`` environment variables.
    Identification headers are merged over any ``default_headers`` passed in.
    """

    kind = ProviderKind.OPENROUTER
    service_name = "openrouter"
    DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        http_referer: Optional[str] = None,
        app_title: Optional[str] = None,
        **extra_client_kwargs: Any,
    ) -> None:
        headers = _identification_headers(
            http_referer or os.getenv("OPENROUTER_HTTP_REFERER"),
            app_title or os.getenv("OPENROUTER_APP_TITLE"),
        )
        if headers:
            passed = extra_client_kwargs.pop("default_headers", None) or {}
            extra_client_kwargs["default_headers"] = {**passed, **headers}

        super().__init__(
            model,
            api_key,
            base_url=base_url
            or os.getenv("OPENROUTER_BASE_URL")
            or self.DEFAULT_BASE_URL,
            **extra_client_kwargs,
        )
