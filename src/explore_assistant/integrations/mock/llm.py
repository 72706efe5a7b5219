"""Scripted LLM provider for tests and offline demos."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Tuple, Union

from ...config import ConfigResolver
from ..llm import LlmGateway, LlmProvider, ProviderKind
from ..local import LocalSettingsStore

ScriptedReply = Union[str, Dict[str, Any], Exception]


class ScriptedLlmProvider(LlmProvider):
    """Answers prompts from a list of ``(marker, reply)`` rules.

    The first rule whose marker occurs in the prompt wins. Dict replies are
    serialized to JSON, exceptions are raised. Every prompt is recorded.
    """

    kind = ProviderKind.GEMINI

    def __init__(
        self,
        rules: Optional[List[Tuple[str, ScriptedReply]]] = None,
        default: ScriptedReply = "",
        model: str = "scripted",
    ):
        super().__init__(model)
        self.rules: List[Tuple[str, ScriptedReply]] = list(rules or [])
        self.default = default
        self.prompts: List[str] = []

    def on(self, marker: str, reply: ScriptedReply) -> "ScriptedLlmProvider":
        self.rules.append((marker, reply))
        return self

    def prompts_containing(self, marker: str) -> List[str]:
        return [p for p in self.prompts if marker in p]

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        reply = self.default
        for marker, candidate in self.rules:
            if marker in prompt:
                reply = candidate
                break
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, dict):
            return json.dumps(reply)
        return reply


def scripted_gateway(provider: LlmProvider) -> LlmGateway:
    """An LlmGateway whose every provider kind resolves to ``provider``."""
    store = LocalSettingsStore()
    store.set("llm_model", "gemini-2.5-flash")
    store.set("gemini_api_key", "scripted-key")
    return LlmGateway(
        ConfigResolver(settings_store=store),
        provider_factories={kind: (lambda config: provider) for kind in ProviderKind},
    )
