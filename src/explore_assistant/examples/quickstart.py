"""Quickstart: ask one question against the in-memory Looker catalog.

This demo loads environment from .env (via python-dotenv if installed), then
runs a single turn through the assistant with a real LLM provider and the
MockLookerAdapter standing in for Looker.

Run:
  python -m explore_assistant.examples.quickstart "total sales by state this year"

Required env (one of):
  - GEMINI_API_KEY (default model gemini-2.5-flash)
  - OPENAI_API_KEY with EXPLORE_ASSISTANT_LLM_MODEL=gpt-4o-mini
  - OPENROUTER_API_KEY with EXPLORE_ASSISTANT_LLM_MODEL=openai/gpt-4o-mini
"""

import asyncio
import importlib.util
import json
import logging
import os
import sys

from explore_assistant import AssistantSession, ExploreRef, create_explore_assistant
from explore_assistant.core.errors import MissingCredentialError
from explore_assistant.integrations.mock import MockLookerAdapter


def ensure_env() -> None:
    if importlib.util.find_spec("dotenv") is not None:
        from dotenv import load_dotenv

        load_dotenv(dotenv_path=os.path.join(os.getcwd(), ".env"), override=False)
    else:
        print(
            "[warn] python-dotenv not installed; skipping .env load. Install with: pip install python-dotenv"
        )


async def main(question: str) -> None:
    ensure_env()
    logging.basicConfig(level=logging.INFO)

    assistant = create_explore_assistant(MockLookerAdapter())
    explores = await assistant.schema_directory.discover_explores()
    await assistant.schema_directory.load_all(explores)

    session = AssistantSession()
    session.select_explore(ExploreRef(model_name="thelook", explore_id="order_items"))

    try:
        await assistant.llm.provider()
    except MissingCredentialError as e:
        print(f"[error] {e.message}")
        sys.exit(1)

    print(f"Sending: {question!r}\n")
    result = await assistant.submit(session, question)
    for message in result.messages:
        if message.explore_params is not None:
            print("Query:", json.dumps(message.explore_params.model_dump(), indent=2))
        if message.message:
            print("Assistant:", message.message)
        if message.summary:
            print("Summary:\n", message.summary)


if __name__ == "__main__":
    asyncio.run(main(" ".join(sys.argv[1:]) or "total sale price by state this year"))
