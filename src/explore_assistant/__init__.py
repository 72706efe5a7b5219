"""
Explore Assistant: natural-language questions in, validated Looker explore
queries out.
"""

from .capabilities.looker_api import ExploreParams, LookerBackend
from .capabilities.semantic import AvailableExplore, ExploreRef, Field, SemanticModel
from .config import ConfigResolver, LlmConfig, LookerSettings
from .core.errors import (
    ExploreAssistantError,
    MissingCredentialError,
    PreconditionError,
    TurnInProgressError,
    UpstreamServiceError,
)
from .core.examples import ExampleLibrary
from .core.pipeline import ExploreAssistant, TurnResult
from .core.session import AssistantSession, InMemorySessionStore, Message, Thread
from .factory import create_explore_assistant
from .integrations.llm import LlmGateway
from .prompts import PromptComposer
from .services import ExploreActions, SchemaDirectory

__all__ = [
    "ExploreParams",
    "LookerBackend",
    "AvailableExplore",
    "ExploreRef",
    "Field",
    "SemanticModel",
    "ConfigResolver",
    "LlmConfig",
    "LookerSettings",
    "ExploreAssistantError",
    "MissingCredentialError",
    "PreconditionError",
    "TurnInProgressError",
    "UpstreamServiceError",
    "ExampleLibrary",
    "ExploreAssistant",
    "TurnResult",
    "AssistantSession",
    "InMemorySessionStore",
    "Message",
    "Thread",
    "create_explore_assistant",
    "LlmGateway",
    "PromptComposer",
    "ExploreActions",
    "SchemaDirectory",
]
