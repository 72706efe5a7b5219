"""
Wiring helpers for a ready-to-use explore assistant.
"""

from __future__ import annotations

from typing import Optional

from .capabilities.looker_api import LookerBackend
from .config import ConfigResolver
from .core.examples import ExampleLibrary
from .core.pipeline import ExploreAssistant
from .integrations.llm import LlmGateway
from .integrations.local import LocalSettingsStore
from .prompts import PromptComposer
from .services import ExploreActions, SchemaDirectory


def create_explore_assistant(
    backend: LookerBackend,
    *,
    settings_store: Optional[LocalSettingsStore] = None,
    examples: Optional[ExampleLibrary] = None,
    llm: Optional[LlmGateway] = None,
    max_examples: int = 20,
) -> ExploreAssistant:
    """Create an assistant whose collaborators all come from ``backend``.

    Args:
        backend: A LookerClient or MockLookerAdapter
        settings_store: Local fallback for the model name and API keys
        examples: Few-shot example library
        llm: Pre-built gateway; by default one is resolved from the backend's
            user attributes, then ``settings_store``, then the environment
        max_examples: Upper bound on few-shot pairs per prompt

    Returns:
        Configured ExploreAssistant instance
    """
    gateway = llm or LlmGateway(
        ConfigResolver(user_attributes=backend, settings_store=settings_store)
    )
    return ExploreAssistant(
        schema_directory=SchemaDirectory(backend),
        llm=gateway,
        actions=ExploreActions(backend, backend, backend),
        composer=PromptComposer(max_examples=max_examples),
        examples=examples,
    )
