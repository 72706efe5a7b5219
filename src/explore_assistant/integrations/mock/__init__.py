"""In-memory collaborators for tests and offline demos."""

from .llm import ScriptedLlmProvider, scripted_gateway
from .looker_adapter import MockLookerAdapter

__all__ = ["ScriptedLlmProvider", "scripted_gateway", "MockLookerAdapter"]
