"""
Core components of the explore assistant.

The turn pipeline lives in ``explore_assistant.core.pipeline``.
"""

from .errors import (
    ExploreAssistantError,
    MissingCredentialError,
    PreconditionError,
    TurnInProgressError,
    UpstreamServiceError,
)
from .examples import ExampleLibrary, GenerationExample, RefinementExample
from .intent import DashboardAction, Intent, IntentMeta, IntentResult
from .json_parser import parse_json
from .session import (
    AssistantSession,
    InMemorySessionStore,
    Message,
    MessageActor,
    MessageType,
    SessionStore,
    Thread,
)

__all__ = [
    "ExploreAssistantError",
    "MissingCredentialError",
    "PreconditionError",
    "TurnInProgressError",
    "UpstreamServiceError",
    "ExampleLibrary",
    "GenerationExample",
    "RefinementExample",
    "DashboardAction",
    "Intent",
    "IntentMeta",
    "IntentResult",
    "parse_json",
    "AssistantSession",
    "InMemorySessionStore",
    "Message",
    "MessageActor",
    "MessageType",
    "SessionStore",
    "Thread",
]
