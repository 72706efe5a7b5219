"""End-to-end tests for the explore assistant turn pipeline.

The LLM is scripted by prompt markers and the BI platform is the in-memory
mock adapter, so every test asserts on both the chat transcript and on the
calls that were (or were not) made.
"""

import os
from datetime import datetime
from unittest.mock import patch

import pytest

from explore_assistant.capabilities.looker_api import Dashboard
from explore_assistant.capabilities.semantic import ExploreRef
from explore_assistant.config import ConfigResolver
from explore_assistant.core.errors import TurnInProgressError, UpstreamServiceError
from explore_assistant.core.examples import (
    ExampleLibrary,
    GenerationExample,
    RefinementExample,
)
from explore_assistant.core.intent import Intent
from explore_assistant.core.pipeline import (
    MISSING_DASHBOARD_TITLE_MESSAGE,
    MISSING_EMAIL_MESSAGE,
    NO_QUERY_MESSAGE,
    NOT_READY_MESSAGE,
    NOTHING_TO_REFINE_MESSAGE,
    REFINE_FAILED_MESSAGE,
    REFINED_PROMPT,
    UNCLEAR_REQUEST_MESSAGE,
    ExploreAssistant,
    merge_explore_params,
)
from explore_assistant.core.session import AssistantSession, MessageActor, MessageType
from explore_assistant.integrations.llm import LlmGateway
from explore_assistant.integrations.local import LocalSettingsStore
from explore_assistant.integrations.mock import (
    MockLookerAdapter,
    scripted_gateway,
)
from explore_assistant.services import ExploreActions, SchemaDirectory

PROMPT_SUMMARY = "Summarize the prompts above"
INTENT = "Determine if the user is"
FILTERS = "Determine the filters"
BASE_QUERY = "Return a JSON query object"
REFINE = "visualization configuration"
DATA_SUMMARY = "Summarize the data above"
SLIDE = "slide presentation"

SALES_QUERY = {
    "model": "thelook",
    "view": "order_items",
    "fields": ["orders.status", "orders.count", "orders.hallucinated"],
    "filters": {"orders.status": "pending", "users.state": "California"},
    "sorts": ["orders.count desc"],
    "limit": "100",
    "vis_config": {"type": "looker_column"},
}


def script(
    llm,
    *,
    summary="show order count by status",
    intent="explore",
    meta=None,
    filters=None,
    query=None,
    refine=None,
    data_summary="",
    slide="",
):
    """Replace the scripted replies for the next turn."""
    llm.rules = []
    llm.on(PROMPT_SUMMARY, summary)
    llm.on(INTENT, {"intent": intent, "meta": meta or {}})
    llm.on(FILTERS, {"filters": filters or []})
    llm.on(BASE_QUERY, query if query is not None else SALES_QUERY)
    llm.on(REFINE, refine if refine is not None else "")
    llm.on(DATA_SUMMARY, data_summary)
    llm.on(SLIDE, slide)
    return llm


async def _build_assistant(looker, llm, **kwargs):
    directory = SchemaDirectory(looker)
    await directory.discover_explores()
    await directory.load_all()
    return ExploreAssistant(
        directory, scripted_gateway(llm), ExploreActions(looker, looker, looker), **kwargs
    )


def _system_texts(result):
    return [m.message for m in result.messages if m.actor == MessageActor.SYSTEM]


# ---------------------------------------------------------------------------
# Query turns
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_explore_turn_produces_validated_query(assistant, llm, session):
    script(
        llm,
        filters=[
            {"field_id": "orders.status", "filter_expression": "complete"},
            {"field_id": "orders.created_date", "filter_expression": "complete"},
        ],
    )

    result = await assistant.submit(session, "How many complete orders per status?")

    assert result.intent == Intent.EXPLORE
    assert result.error is None
    params = result.explore_params
    assert params.fields == ["orders.status", "orders.count"]
    assert params.filters == {"orders.status": "complete", "users.state": "California"}
    assert params.sorts == ["orders.count desc"]
    assert params.limit == "100"
    assert params.vis_config == {"type": "looker_column"}
    assert "model" not in params.model_dump() and "view" not in params.model_dump()

    thread = session.thread
    assert thread.explore_key == "thelook:order_items"
    assert thread.explore_params == params
    assert thread.summarized_prompt == "show order count by status"
    assert [m.actor for m in thread.messages] == [MessageActor.USER, MessageActor.SYSTEM]
    assert thread.messages[-1].type == MessageType.EXPLORE
    assert not session.is_querying


@pytest.mark.asyncio
async def test_query_prompts_use_summary_schema_and_date(assistant, llm, session):
    assistant.clock = lambda: datetime(2024, 5, 17, 9, 30)
    assistant.examples = ExampleLibrary(
        explore_generation_examples={
            "thelook:order_items": [
                GenerationExample(input="orders by state", output={"fields": ["users.state"]})
            ]
        }
    )
    script(llm, summary="show revenue by category")

    await assistant.submit(session, "revenue by category please")

    (filter_prompt,) = llm.prompts_containing(FILTERS)
    (base_prompt,) = llm.prompts_containing(BASE_QUERY)
    for prompt in (filter_prompt, base_prompt):
        assert "show revenue by category" in prompt
        assert "| order_items.total_sale_price |" in prompt
        assert 'input: "orders by state"' in prompt
        assert "orders.internal_id" not in prompt
    assert base_prompt.startswith("The current date is 2024-05-17T09:30:00")


@pytest.mark.asyncio
async def test_prompt_history_is_summarized_with_most_recent_last(assistant, llm, session):
    assistant.examples = ExampleLibrary(
        explore_refinement_examples={
            "thelook:order_items": [
                RefinementExample(input=["show sales", "by month"], output="show sales by month")
            ]
        }
    )
    texts = ["show sales", "show sales by region", "by region instead show profit"]
    for text in texts:
        script(llm, summary="show profit by region")
        await assistant.submit(session, text)

    assert session.thread.prompt_list == texts
    last_summary_prompt = llm.prompts_containing(PROMPT_SUMMARY)[-1]
    assert '1. "show sales"' in last_summary_prompt
    assert '3. "by region instead show profit"' in last_summary_prompt
    assert 'The summarized prompt: "show sales by month"' in last_summary_prompt
    assert "show profit by region" in llm.prompts_containing(FILTERS)[-1]


@pytest.mark.asyncio
async def test_garbage_model_output_degrades_to_defaults(assistant, llm, session):
    script(llm, query="Sure! Here's your query: fields are orders.count")
    llm.rules.insert(0, (FILTERS, "no filters I think"))

    result = await assistant.submit(session, "orders")

    assert result.error is None
    assert result.explore_params.fields == []
    assert result.explore_params.filters == {}
    assert result.explore_params.limit == "500"
    assert result.explore_params.vis_config == {"type": "looker_grid"}


@pytest.mark.asyncio
async def test_unknown_vis_type_falls_back_to_grid(assistant, llm, session):
    script(llm, query={**SALES_QUERY, "vis_config": {"type": "looker_sankey"}})

    result = await assistant.submit(session, "orders by status")

    assert result.explore_params.vis_config == {"type": "looker_grid"}


@pytest.mark.asyncio
async def test_malformed_sort_and_limit_are_dropped(assistant, llm, session):
    script(
        llm,
        query={
            "fields": ["orders.status", "orders.count"],
            "sorts": ["orders.count desc ²", "orders.status asc"],
            "limit": "²",
        },
    )

    result = await assistant.submit(session, "orders by status")

    assert result.error is None
    assert result.explore_params.sorts == ["orders.status asc"]
    assert result.explore_params.limit == "500"


@pytest.mark.asyncio
async def test_empty_summary_asks_to_rephrase(assistant, llm, session):
    script(llm, summary="   ")

    result = await assistant.submit(session, "hmm")

    assert _system_texts(result) == [UNCLEAR_REQUEST_MESSAGE]
    assert llm.prompts_containing(FILTERS) == []
    assert session.thread.explore_params is None


@pytest.mark.asyncio
async def test_unloaded_explore_is_not_ready(llm, session):
    looker = MockLookerAdapter(failing_explores={"thelook:order_items": 500})
    assistant = await _build_assistant(looker, llm)
    script(llm)

    result = await assistant.submit(session, "orders by status")

    assert _system_texts(result) == [NOT_READY_MESSAGE]
    assert llm.prompts_containing(FILTERS) == []
    assert llm.prompts_containing(BASE_QUERY) == []


@pytest.mark.asyncio
async def test_summary_intent_runs_query_and_condenses(assistant, llm, looker, session):
    script(
        llm,
        intent="summary",
        data_summary="Most orders are complete.",
        slide="## Orders\n- complete dominates",
    )

    result = await assistant.submit(session, "summarize orders by status")

    message = result.messages[-1]
    assert message.type == MessageType.SUMMARIZE
    assert message.summary == "## Orders\n- complete dominates"
    assert message.explore_params == session.thread.explore_params
    assert looker.calls_to("run_query") == [{"query_id": "1", "result_format": "md"}]
    (data_prompt,) = llm.prompts_containing(DATA_SUMMARY)
    assert "| orders.status | orders.count |" in data_prompt
    assert "Most orders are complete." in llm.prompts_containing(SLIDE)[0]


# ---------------------------------------------------------------------------
# Dashboard and schedule turns
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_dashboard_without_prior_query(assistant, llm, looker, session):
    script(llm, intent="dashboard", meta={"action": "create", "title": "Sales"})

    result = await assistant.submit(session, "save this to a new dashboard Sales")

    assert _system_texts(result) == [NO_QUERY_MESSAGE]
    assert looker.calls == []


@pytest.mark.asyncio
async def test_add_to_dashboard_without_title_asks_for_one(assistant, llm, looker, session):
    script(llm)
    await assistant.submit(session, "orders by status")

    script(llm, intent="dashboard", meta={"action": "add", "title": None})
    result = await assistant.submit(session, "add this to the dashboard")

    assert _system_texts(result) == [MISSING_DASHBOARD_TITLE_MESSAGE]
    assert looker.calls == []
    assert len(llm.prompts_containing(BASE_QUERY)) == 1
    assert session.thread.prompt_list == ["orders by status", "add this to the dashboard"]


@pytest.mark.asyncio
async def test_create_dashboard(assistant, llm, looker, session):
    script(llm)
    await assistant.submit(session, "orders by status")

    script(llm, intent="dashboard", meta={"action": "create", "title": "Sales"})
    result = await assistant.submit(session, "save this as a new dashboard called Sales")

    message = result.messages[-1]
    assert message.type == MessageType.MARKDOWN
    assert message.message == 'Created new dashboard "[Sales](/dashboards/100)" and added tile.'
    assert looker.calls_to("create_dashboard") == [{"title": "Sales"}]
    created = looker.calls_to("create_query")[0]
    assert created["explore"] == "thelook:order_items"
    assert created["params"].fields == ["orders.status", "orders.count"]


@pytest.mark.asyncio
async def test_add_to_existing_dashboard(assistant, llm, looker, session):
    looker.dashboards.append(Dashboard(id="5", title="Ops Review"))
    script(llm)
    await assistant.submit(session, "orders by status")

    script(llm, intent="dashboard", meta={"title": "ops review"})
    result = await assistant.submit(session, "add to dashboard ops review")

    assert _system_texts(result) == ['Added tile to dashboard "[Ops Review](/dashboards/5)".']
    assert looker.calls_to("add_tile")[0]["dashboard_id"] == "5"

    script(llm, intent="dashboard", meta={"action": "add", "title": "Finance"})
    result = await assistant.submit(session, "add to dashboard Finance")
    assert _system_texts(result) == ['Could not find dashboard "Finance".']


@pytest.mark.asyncio
async def test_schedule(assistant, llm, looker, session):
    script(llm)
    await assistant.submit(session, "orders by status")

    script(llm, intent="schedule", meta={"frequency": "weekly"})
    result = await assistant.submit(session, "schedule this weekly")
    assert _system_texts(result) == [MISSING_EMAIL_MESSAGE]
    assert looker.calls_to("create_scheduled_plan") == []

    script(llm, intent="schedule", meta={"email": "ops@example.com", "frequency": "Weekly"})
    result = await assistant.submit(session, "schedule this weekly to ops@example.com")

    assert _system_texts(result) == ["Scheduled report to ops@example.com (weekly)."]
    (plan,) = looker.calls_to("create_scheduled_plan")
    assert plan["email"] == "ops@example.com"
    assert plan["crontab"] == "0 6 * * 1"


# ---------------------------------------------------------------------------
# Refine turns
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_refine_without_prior_visualization(assistant, llm, session):
    script(llm, intent="refine", refine={"type": "looker_bar"})

    result = await assistant.submit(session, "make it a bar chart")

    assert _system_texts(result) == [NOTHING_TO_REFINE_MESSAGE]
    assert llm.prompts_containing(REFINE) == []


@pytest.mark.asyncio
async def test_refine_updates_only_the_vis_config(assistant, llm, session):
    script(llm)
    first = await assistant.submit(session, "orders by status")

    script(
        llm,
        intent="refine",
        refine={"type": "looker_bar", "series_colors": {"orders.count": "#FF0000"}},
    )
    result = await assistant.submit(session, "make it a red bar chart")

    refined = result.explore_params
    assert refined.vis_config == {
        "type": "looker_bar",
        "series_colors": {"orders.count": "#FF0000"},
    }
    assert refined.fields == first.explore_params.fields
    assert refined.filters == first.explore_params.filters
    assert result.messages[-1].summarized_prompt == REFINED_PROMPT
    assert session.thread.explore_params == refined
    (refine_prompt,) = llm.prompts_containing(REFINE)
    assert '"type": "looker_column"' in refine_prompt
    assert "- Measures: orders.count" in refine_prompt
    assert "- Dimensions: orders.status" in refine_prompt


@pytest.mark.asyncio
async def test_refine_after_summary_turn_keeps_current_query(assistant, llm, session):
    script(llm)
    await assistant.submit(session, "orders by status")
    script(
        llm,
        intent="summary",
        query={"fields": ["users.state", "orders.count"], "vis_config": {"type": "looker_grid"}},
        data_summary="California leads.",
        slide="## States",
    )
    await assistant.submit(session, "summarize orders by state")

    script(llm, intent="refine", refine={"type": "looker_bar"})
    result = await assistant.submit(session, "make it a bar chart")

    assert _system_texts(result) == [NOTHING_TO_REFINE_MESSAGE]
    assert llm.prompts_containing(REFINE) == []
    assert session.thread.explore_params.fields == ["users.state", "orders.count"]


@pytest.mark.asyncio
async def test_refine_twice_builds_on_the_latest_refinement(assistant, llm, session):
    script(llm)
    await assistant.submit(session, "orders by status")
    script(llm, intent="refine", refine={"type": "looker_bar"})
    await assistant.submit(session, "make it a bar chart")

    script(llm, intent="refine", refine={"type": "looker_bar", "show_value_labels": True})
    result = await assistant.submit(session, "show the values")

    assert result.explore_params.vis_config == {"type": "looker_bar", "show_value_labels": True}
    assert '"type": "looker_bar"' in llm.prompts_containing(REFINE)[-1]


@pytest.mark.asyncio
async def test_refine_with_invalid_type_keeps_previous_type(assistant, llm, session):
    script(llm)
    await assistant.submit(session, "orders by status")

    script(llm, intent="refine", refine={"type": "donut", "show_value_labels": True})
    result = await assistant.submit(session, "make it a donut")

    assert result.explore_params.vis_config == {
        "type": "looker_column",
        "show_value_labels": True,
    }


@pytest.mark.asyncio
async def test_refine_with_unparseable_reply(assistant, llm, session):
    script(llm)
    await assistant.submit(session, "orders by status")

    script(llm, intent="refine", refine="I would make it blue")
    result = await assistant.submit(session, "make it blue")

    assert _system_texts(result) == [REFINE_FAILED_MESSAGE]
    assert session.thread.explore_params.vis_config == {"type": "looker_column"}


# ---------------------------------------------------------------------------
# Failures and preconditions
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_upstream_error_becomes_error_message(assistant, llm, session):
    script(llm)
    llm.rules.insert(
        0,
        (FILTERS, UpstreamServiceError("Gemini API error: quota", status=429, service="gemini")),
    )

    result = await assistant.submit(session, "orders by status")

    assert result.error == "Gemini API error: quota"
    assert _system_texts(result) == ["Error: Gemini API error: quota"]
    assert not session.is_querying
    assert session.thread.explore_params is None


@pytest.mark.asyncio
async def test_unexpected_error_becomes_error_message(assistant, llm, session, caplog):
    script(llm)
    llm.rules.insert(0, (BASE_QUERY, RuntimeError("boom")))

    result = await assistant.submit(session, "orders by status")

    assert _system_texts(result) == ["Error: boom"]
    assert not session.is_querying
    assert "Unexpected error while handling turn" in caplog.text


@pytest.mark.asyncio
async def test_missing_credential_becomes_error_message(session):
    looker = MockLookerAdapter()
    directory = SchemaDirectory(looker)
    await directory.load_all(await directory.discover_explores())
    env = {"EXPLORE_ASSISTANT_API_KEY": "", "GEMINI_API_KEY": "", "EXPLORE_ASSISTANT_LLM_MODEL": ""}
    with patch.dict(os.environ, env):
        assistant = ExploreAssistant(
            directory,
            LlmGateway(ConfigResolver(settings_store=LocalSettingsStore())),
            ExploreActions(looker, looker, looker),
        )
        result = await assistant.submit(session, "orders by status")

    assert result.error.startswith("API key not configured")
    assert _system_texts(result)[-1].startswith("Error: API key not configured")


@pytest.mark.asyncio
async def test_concurrent_turn_is_rejected(assistant, llm, session):
    session.is_querying = True
    with pytest.raises(TurnInProgressError):
        await assistant.submit(session, "orders by status")
    assert llm.prompts == []


@pytest.mark.asyncio
async def test_empty_text_and_missing_explore(assistant, llm):
    script(llm)
    session = AssistantSession()

    result = await assistant.submit(session, "orders by status")
    assert _system_texts(result) == ["Error: No explore selected"]

    session.select_explore(ExploreRef(model_name="thelook", explore_id="order_items"))
    result = await assistant.submit(session, "   ")
    assert _system_texts(result) == ["Error: Please enter a question"]
    assert llm.prompts == []


# ---------------------------------------------------------------------------
# Sessions and merging
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_switching_explore_archives_thread(assistant, llm, session):
    script(llm)
    await assistant.submit(session, "orders by status")
    finished = session.thread

    session.select_explore(ExploreRef(model_name="thelook", explore_id="users"))

    assert session.history == [finished]
    assert session.thread.prompt_list == []
    assert session.explore.explore_key == "thelook:users"


def test_merge_filter_step_wins(semantic_model):
    params = merge_explore_params(
        {"fields": ["orders.count"], "filters": {"users.state": "Texas"}},
        [
            {"field_id": "users.state", "filter_expression": "Ohio"},
            {"field_id": "orders.status", "filter_expression": "complete"},
        ],
        semantic_model,
    )
    assert params.filters == {"users.state": "Ohio", "orders.status": "complete"}


def test_merge_without_filter_entries(semantic_model):
    params = merge_explore_params(
        {"fields": ["orders.count"], "filters": {"users.state": "Texas"}}, None, semantic_model
    )
    assert params.filters == {"users.state": "Texas"}
