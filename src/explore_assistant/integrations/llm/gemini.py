"""Gemini "generate content" provider over plain httpx."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ...core.errors import UpstreamServiceError
from .base import LlmProvider, ProviderKind

logger = logging.getLogger(__name__)


def _error_reason(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.reason_phrase or response.text[:200]
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return response.reason_phrase or ""


def _first_candidate_text(payload: Dict[str, Any]) -> str:
    candidates = payload.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    if not parts:
        return ""
    return parts[0].get("text") or ""


class GeminiProvider(LlmProvider):
    """Google Gemini provider.

    Args:
        model: Gemini model id (e.g., "gemini-2.5-flash").
        api_key: API key, sent as the ``key`` query parameter.
        base_url: API root; defaults to the public v1beta endpoint.
        http_client: Optional shared ``httpx.AsyncClient``.
    """

    kind = ProviderKind.GEMINI
    DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 120.0,
    ) -> None:
        super().__init__(model)
        self._api_key = api_key
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def complete(self, prompt: str) -> str:
        url = f"{self.base_url}/models/{self.model}:generateContent"
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            response = await self._client.post(
                url, params={"key": self._api_key}, json=body
            )
        except httpx.HTTPError as e:
            raise UpstreamServiceError(
                f"Gemini request failed: {e}", service="gemini"
            ) from e

        if not response.is_success:
            raise UpstreamServiceError(
                f"Gemini API error: {_error_reason(response)}",
                status=response.status_code,
                service="gemini",
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamServiceError(
                "Gemini API returned a non-JSON body",
                status=response.status_code,
                service="gemini",
            ) from e
        return _first_candidate_text(payload if isinstance(payload, dict) else {})

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
