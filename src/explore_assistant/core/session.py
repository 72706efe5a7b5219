"""
Session state for the explore assistant.

One ``AssistantSession`` is the single owned mutable store for a user: the
selected explore, the running thread and past threads, and the in-flight flag.
The pipeline reads and writes it only at well-defined points of a turn.
"""

from __future__ import annotations

import time
import uuid
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..capabilities.looker_api.models import ExploreParams
from ..capabilities.semantic.models import ExploreRef


def _now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> str:
    return str(uuid.uuid4())


class MessageActor(str, Enum):
    USER = "user"
    SYSTEM = "system"


class MessageType(str, Enum):
    TEXT = "text"
    MARKDOWN = "markdown"
    EXPLORE = "explore"
    SUMMARIZE = "summarize"


class Message(BaseModel):
    """One turn in a thread: free text or a query payload."""

    uuid: str = Field(default_factory=_new_id)
    actor: MessageActor = MessageActor.SYSTEM
    type: MessageType = MessageType.TEXT
    message: Optional[str] = None
    explore_params: Optional[ExploreParams] = None
    summarized_prompt: Optional[str] = None
    summary: Optional[str] = None
    created_at: int = Field(default_factory=_now_ms)

    @classmethod
    def user_text(cls, text: str) -> "Message":
        return cls(actor=MessageActor.USER, type=MessageType.TEXT, message=text)

    @classmethod
    def system_text(cls, text: str, markdown: bool = False) -> "Message":
        return cls(
            actor=MessageActor.SYSTEM,
            type=MessageType.MARKDOWN if markdown else MessageType.TEXT,
            message=text,
        )


class Thread(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    uuid: str = Field(default_factory=_new_id)
    model_name: str = ""
    explore_id: str = ""
    prompt_list: List[str] = Field(default_factory=list)
    messages: List[Message] = Field(default_factory=list)
    explore_params: Optional[ExploreParams] = None
    summarized_prompt: Optional[str] = None
    created_at: int = Field(default_factory=_now_ms)

    @property
    def explore_key(self) -> str:
        if not self.model_name or not self.explore_id:
            return ""
        return f"{self.model_name}:{self.explore_id}"

    @property
    def explore(self) -> Optional[ExploreRef]:
        if not self.explore_key:
            return None
        return ExploreRef(model_name=self.model_name, explore_id=self.explore_id)

    def bind_explore(self, explore: ExploreRef) -> None:
        self.model_name = explore.model_name
        self.explore_id = explore.explore_id

    def last_explore_message(self) -> Optional[Message]:
        """Latest query-carrying message, or None when that one is a summary."""
        for message in reversed(self.messages):
            if message.explore_params is not None:
                return message if message.type == MessageType.EXPLORE else None
        return None


class AssistantSession(BaseModel):
    session_id: str = Field(default_factory=_new_id)
    current_explore: Optional[ExploreRef] = None
    thread: Thread = Field(default_factory=Thread)
    history: List[Thread] = Field(default_factory=list)
    is_querying: bool = False

    @property
    def explore(self) -> Optional[ExploreRef]:
        """Explore the running thread is bound to, else the selected one."""
        return self.thread.explore or self.current_explore

    def select_explore(self, explore: ExploreRef) -> None:
        """Select an explore; a thread bound to another explore is archived."""
        self.current_explore = ExploreRef(
            model_name=explore.model_name, explore_id=explore.explore_id
        )
        if self.thread.explore_key and self.thread.explore_key != explore.explore_key:
            self.start_new_thread()

    def start_new_thread(self) -> Thread:
        if self.thread.messages:
            self.history.append(self.thread)
        self.thread = Thread()
        return self.thread

    def add_message(self, message: Message) -> Message:
        self.thread.messages.append(message)
        return message


# ---------------------------------------------------------------------------
# Session Store
# ---------------------------------------------------------------------------


class SessionStore(ABC):
    """Holds sessions for the lifetime of the host process."""

    @abstractmethod
    async def create(self) -> AssistantSession:
        ...

    @abstractmethod
    async def get(self, session_id: str) -> Optional[AssistantSession]:
        ...


class InMemorySessionStore(SessionStore):
    """Non-persistent, in-memory reference implementation."""

    def __init__(self) -> None:
        self._sessions: Dict[str, AssistantSession] = {}

    async def create(self) -> AssistantSession:
        session = AssistantSession()
        self._sessions[session.session_id] = session
        return session

    async def get(self, session_id: str) -> Optional[AssistantSession]:
        return self._sessions.get(session_id)
