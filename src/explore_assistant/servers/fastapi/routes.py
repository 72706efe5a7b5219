"""
FastAPI routes for the explore assistant: explores, sessions, threads, turns.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

try:
    from fastapi import APIRouter, HTTPException
except ImportError:
    raise ImportError(
        "FastAPI is required for assistant routes. "
        "Install with: pip install 'explore-assistant[fastapi]'"
    )

from ...capabilities.semantic import ExploreRef
from ...core.errors import TurnInProgressError
from ...core.pipeline import ExploreAssistant, TurnResult
from ...core.session import AssistantSession, SessionStore


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateSessionRequest(BaseModel):
    explore_key: Optional[str] = Field(
        default=None, description='Explore to select, as "model:explore"'
    )


class SelectExploreRequest(BaseModel):
    explore_key: str = Field(description='Explore to select, as "model:explore"')


class SubmitMessageRequest(BaseModel):
    message: str = Field(min_length=1, description="The user's message")


# ---------------------------------------------------------------------------
# Route registration
# ---------------------------------------------------------------------------


def _session_payload(session: AssistantSession) -> Dict[str, Any]:
    return session.model_dump(mode="json")


def _turn_payload(result: TurnResult) -> Dict[str, Any]:
    return {
        "intent": result.intent.value if result.intent else None,
        "messages": [m.model_dump(mode="json") for m in result.messages],
        "explore_params": result.explore_params.model_dump(mode="json")
        if result.explore_params
        else None,
        "summarized_prompt": result.summarized_prompt,
        "error": result.error,
    }


def register_assistant_routes(
    app: Any,
    assistant: ExploreAssistant,
    session_store: SessionStore,
) -> None:
    """Register explore assistant API routes on a FastAPI app."""
    router = APIRouter(prefix="/api/v1", tags=["explore-assistant"])
    directory = assistant.schema_directory

    async def _get_session(session_id: str) -> AssistantSession:
        session = await session_store.get(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail="Session not found")
        return session

    async def _select(session: AssistantSession, explore_key: str) -> None:
        known = {e.explore_key for e in directory.available_explores}
        if explore_key not in known:
            raise HTTPException(status_code=404, detail="Explore not found")
        explore = ExploreRef.from_key(explore_key)
        await directory.load_schema(explore.model_name, explore.explore_id)
        session.select_explore(explore)

    @router.get("/explores")
    async def list_explores() -> Dict[str, Any]:
        return {
            "explores": [
                {
                    **e.model_dump(),
                    "explore_key": e.explore_key,
                    "ready": directory.is_ready(e.explore_key),
                }
                for e in directory.available_explores
            ]
        }

    @router.post("/sessions")
    async def create_session(body: CreateSessionRequest) -> Dict[str, Any]:
        session = await session_store.create()
        if body.explore_key:
            await _select(session, body.explore_key)
        return {"session": _session_payload(session)}

    @router.get("/sessions/{session_id}")
    async def get_session(session_id: str) -> Dict[str, Any]:
        session = await _get_session(session_id)
        return {"session": _session_payload(session)}

    @router.put("/sessions/{session_id}/explore")
    async def select_explore(
        session_id: str, body: SelectExploreRequest
    ) -> Dict[str, Any]:
        session = await _get_session(session_id)
        if session.is_querying:
            raise HTTPException(status_code=409, detail="A request is already in progress")
        await _select(session, body.explore_key)
        return {
            "session": _session_payload(session),
            "ready": directory.is_ready(body.explore_key),
        }

    @router.post("/sessions/{session_id}/threads")
    async def new_thread(session_id: str) -> Dict[str, Any]:
        session = await _get_session(session_id)
        if session.is_querying:
            raise HTTPException(status_code=409, detail="A request is already in progress")
        thread = session.start_new_thread()
        return {"thread": thread.model_dump(mode="json")}

    @router.post("/sessions/{session_id}/messages")
    async def submit_message(
        session_id: str, body: SubmitMessageRequest
    ) -> Dict[str, Any]:
        session = await _get_session(session_id)
        try:
            result = await assistant.submit(session, body.message)
        except TurnInProgressError as e:
            raise HTTPException(status_code=409, detail=e.message)
        return _turn_payload(result)

    app.include_router(router)
