"""
FastAPI application factory.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from ...core.pipeline import ExploreAssistant
from ...core.session import InMemorySessionStore, SessionStore
from .routes import register_assistant_routes

logger = logging.getLogger(__name__)


def create_app(
    assistant: ExploreAssistant,
    session_store: Optional[SessionStore] = None,
    *,
    load_schemas_on_startup: bool = True,
) -> FastAPI:
    """Create a FastAPI app serving the assistant.

    On startup the explores are discovered and, unless disabled, every
    explore's semantic model is loaded concurrently.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        directory = assistant.schema_directory
        explores = await directory.discover_explores()
        if load_schemas_on_startup:
            loaded = await directory.load_all(explores)
            logger.info("Loaded %s of %s explores", len(loaded), len(explores))
        yield

    app = FastAPI(title="Explore Assistant", lifespan=lifespan)
    register_assistant_routes(app, assistant, session_store or InMemorySessionStore())
    return app
