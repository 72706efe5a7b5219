"""
Configuration resolution.

LLM settings come from host-provided user attributes first, then the local
settings store, then environment variables. Looker API settings come from the
standard ``LOOKERSDK_*`` environment variables.

Environment variables:
  - EXPLORE_ASSISTANT_LLM_MODEL (defaults to gemini-2.5-flash)
  - EXPLORE_ASSISTANT_API_KEY (any provider)
  - GEMINI_API_KEY / OPENAI_API_KEY / OPENROUTER_API_KEY (per provider)
  - LOOKERSDK_BASE_URL, LOOKERSDK_CLIENT_ID, LOOKERSDK_CLIENT_SECRET
  - LOOKERSDK_TIMEOUT, LOOKERSDK_VERIFY_SSL (optional)
"""

from __future__ import annotations

import logging
import os
from typing import Awaitable, Callable, List, Optional

from pydantic import BaseModel, Field

from .capabilities.looker_api import UserAttributeSource
from .integrations.llm.base import ProviderKind, resolve_provider_kind
from .integrations.local import LocalSettingsStore

logger = logging.getLogger(__name__)

DEFAULT_LLM_MODEL = "gemini-2.5-flash"

MODEL_ATTRIBUTE = "llm_model"
API_KEY_ATTRIBUTE = "api_key"

_PROVIDER_ENV_KEYS = {
    ProviderKind.GEMINI: "GEMINI_API_KEY",
    ProviderKind.OPENAI: "OPENAI_API_KEY",
    ProviderKind.OPENROUTER: "OPENROUTER_API_KEY",
}


class LlmConfig(BaseModel):
    model: str = DEFAULT_LLM_MODEL
    provider: ProviderKind = ProviderKind.GEMINI
    api_key: Optional[str] = Field(default=None, repr=False)

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)


class LookerSettings(BaseModel):
    base_url: str
    client_id: str
    client_secret: str = Field(repr=False)
    timeout: float = 120.0
    verify_ssl: bool = True

    @classmethod
    def from_env(cls) -> "LookerSettings":
        """Read ``LOOKERSDK_*`` variables.

        Raises:
            ValueError: if the base URL or client credentials are missing
        """
        base_url = os.getenv("LOOKERSDK_BASE_URL")
        client_id = os.getenv("LOOKERSDK_CLIENT_ID")
        client_secret = os.getenv("LOOKERSDK_CLIENT_SECRET")
        if not base_url or not client_id or not client_secret:
            raise ValueError(
                "LOOKERSDK_BASE_URL, LOOKERSDK_CLIENT_ID and "
                "LOOKERSDK_CLIENT_SECRET must be set"
            )
        return cls(
            base_url=base_url.rstrip("/"),
            client_id=client_id,
            client_secret=client_secret,
            timeout=float(os.getenv("LOOKERSDK_TIMEOUT", "120")),
            verify_ssl=os.getenv("LOOKERSDK_VERIFY_SSL", "true").lower()
            not in {"0", "false", "no"},
        )


class ConfigResolver:
    """Resolves the LLM model and credential for the current user.

    Args:
        user_attributes: Host-provided per-user attributes (optional).
        settings_store: Local fallback store (optional).
    """

    def __init__(
        self,
        user_attributes: Optional[UserAttributeSource] = None,
        settings_store: Optional[LocalSettingsStore] = None,
    ) -> None:
        self.user_attributes = user_attributes
        self.settings_store = settings_store

    async def resolve(self) -> LlmConfig:
        model = await self._first_value(
            [
                lambda: self._user_attribute(MODEL_ATTRIBUTE),
                lambda: self._stored(MODEL_ATTRIBUTE),
                lambda: self._env("EXPLORE_ASSISTANT_LLM_MODEL"),
            ]
        )
        model = model or DEFAULT_LLM_MODEL
        provider = resolve_provider_kind(model)

        api_key = await self._first_value(
            [
                lambda: self._user_attribute(API_KEY_ATTRIBUTE),
                lambda: self._stored(f"{provider.value}_api_key"),
                lambda: self._env("EXPLORE_ASSISTANT_API_KEY"),
                lambda: self._env(_PROVIDER_ENV_KEYS[provider]),
            ]
        )

        logger.info(
            "Resolved LLM model %s (provider=%s, credential=%s)",
            model,
            provider.value,
            "set" if api_key else "missing",
        )
        return LlmConfig(model=model, provider=provider, api_key=api_key)

    async def _first_value(
        self, lookups: List[Callable[[], Awaitable[Optional[str]]]]
    ) -> Optional[str]:
        for lookup in lookups:
            value = await lookup()
            if value and value.strip():
                return value.strip()
        return None

    async def _user_attribute(self, name: str) -> Optional[str]:
        if self.user_attributes is None:
            return None
        try:
            return await self.user_attributes.get_user_attribute(name)
        except Exception as e:
            logger.warning("Error fetching %s user attribute: %s", name, e)
            return None

    async def _stored(self, key: str) -> Optional[str]:
        if self.settings_store is None:
            return None
        return self.settings_store.get(key)

    async def _env(self, name: str) -> Optional[str]:
        return os.getenv(name)
