"""Shared fixtures for the explore assistant test suite.

Tests marked with a live-service marker are skipped unless every environment
variable that service needs is set.
"""

import os

import pytest
import pytest_asyncio

from explore_assistant.capabilities.semantic import ExploreRef, Field, SemanticModel
from explore_assistant.core.examples import ExampleLibrary
from explore_assistant.core.pipeline import ExploreAssistant
from explore_assistant.core.session import AssistantSession
from explore_assistant.integrations.mock import (
    MockLookerAdapter,
    ScriptedLlmProvider,
    scripted_gateway,
)
from explore_assistant.services import ExploreActions, SchemaDirectory

ORDER_ITEMS = ExploreRef(model_name="thelook", explore_id="order_items")

LIVE_SERVICES = {
    "openai": ("OpenAI API key", ["OPENAI_API_KEY"]),
    "openrouter": ("OpenRouter API key", ["OPENROUTER_API_KEY"]),
    "gemini": ("Gemini API key", ["GEMINI_API_KEY"]),
    "looker": (
        "a Looker instance",
        ["LOOKERSDK_BASE_URL", "LOOKERSDK_CLIENT_ID", "LOOKERSDK_CLIENT_SECRET"],
    ),
}


def pytest_configure(config):
    for marker, (needs, _) in LIVE_SERVICES.items():
        config.addinivalue_line("markers", f"{marker}: marks tests requiring {needs}")


def pytest_collection_modifyitems(config, items):
    for item in items:
        for marker, (_, env_vars) in LIVE_SERVICES.items():
            if marker not in item.keywords:
                continue
            missing = [name for name in env_vars if not os.getenv(name)]
            if missing:
                item.add_marker(
                    pytest.mark.skip(reason=f"{', '.join(missing)} not set")
                )


@pytest.fixture
def semantic_model():
    return SemanticModel(
        model_name="thelook",
        explore_id="order_items",
        dimensions=[
            Field(name="orders.created_date", type="date", label="Created Date"),
            Field(name="orders.status", type="string", label="Status"),
            Field(name="users.state", type="string", label="State"),
            Field(name="products.category", type="string", label="Category"),
            Field(name="orders.is_returned", type="yesno", label="Is Returned"),
        ],
        measures=[
            Field(name="orders.count", type="count", label="Count"),
            Field(
                name="order_items.total_sale_price",
                type="sum",
                label="Total Sale Price",
            ),
        ],
    )


@pytest.fixture
def looker():
    return MockLookerAdapter()


@pytest.fixture
def llm():
    return ScriptedLlmProvider()


@pytest_asyncio.fixture
async def assistant(looker, llm):
    directory = SchemaDirectory(looker)
    await directory.discover_explores()
    await directory.load_all()
    return ExploreAssistant(
        schema_directory=directory,
        llm=scripted_gateway(llm),
        actions=ExploreActions(looker, looker, looker),
        examples=ExampleLibrary(),
    )


@pytest.fixture
def session():
    session = AssistantSession()
    session.select_explore(ORDER_ITEMS)
    return session
