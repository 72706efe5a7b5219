"""Tests for the prompt composer."""

import json
from datetime import datetime

import pytest

from explore_assistant.capabilities.looker_api import ExploreParams
from explore_assistant.capabilities.semantic import ExploreRef, Field
from explore_assistant.core.errors import PreconditionError
from explore_assistant.core.examples import GenerationExample, RefinementExample
from explore_assistant.prompts import PromptComposer, UsedFields


@pytest.fixture
def composer():
    return PromptComposer(max_examples=2)


def _json_blocks(prompt: str) -> int:
    return prompt.count('{\n  "')


def test_shared_context_requires_dimensions_and_measures(composer, semantic_model):
    with pytest.raises(PreconditionError, match="Dimensions or measures"):
        composer.build_shared_context([], semantic_model.measures)
    with pytest.raises(PreconditionError):
        composer.build_shared_context(semantic_model.dimensions, [])


def test_shared_context_lists_every_field(composer, semantic_model):
    context = composer.build_shared_context(
        semantic_model.dimensions,
        semantic_model.measures,
        explore=ExploreRef(model_name="thelook", explore_id="order_items"),
    )
    for name in semantic_model.field_names:
        assert f"| {name} |" in context
    assert "Explore: order_items" in context
    assert "# Documentation" in context and "# End Metadata" in context


def test_shared_context_escapes_table_cells(composer):
    context = composer.build_shared_context(
        [Field(name="orders.status", type="string", description="open | closed\nor held")],
        [Field(name="orders.count", type="count")],
    )
    assert "open \\| closed or held" in context


def test_shared_context_bounds_examples(composer, semantic_model):
    examples = [
        GenerationExample(input=f"question {i}", output={"fields": ["orders.count"]})
        for i in range(5)
    ]
    context = composer.build_shared_context(
        semantic_model.dimensions, semantic_model.measures, examples
    )
    assert 'input: "question 0"' in context
    assert 'input: "question 1"' in context
    assert 'input: "question 2"' not in context


def test_prompt_summary_prefers_most_recent_prompt(composer):
    prompt = composer.build_prompt_summary_prompt(
        ["show sales", "show sales by region", "by region instead show profit"],
        [RefinementExample(input=["show sales", "by month"], output="show sales by month")],
    )
    assert "prefer the most recent prompt" in prompt
    assert "Do not merge conflicting requests into a union" in prompt
    assert '3. "by region instead show profit"' in prompt
    assert prompt.index('1. "show sales"') < prompt.index('3. "by region')
    assert 'The summarized prompt: "show sales by month"' in prompt


def test_intent_prompt_shows_one_example(composer):
    prompt = composer.build_intent_prompt("add this to dashboard Sales")
    assert "add this to dashboard Sales" in prompt
    assert _json_blocks(prompt) == 1
    assert '"intent": "dashboard"' in prompt


def test_filter_prompt_shows_one_example(composer, semantic_model):
    context = composer.build_shared_context(
        semantic_model.dimensions, semantic_model.measures
    )
    prompt = composer.build_filter_prompt("complete orders this year", context)
    assert prompt.startswith(context)
    assert "complete orders this year" in prompt
    assert _json_blocks(prompt) == 1
    assert '"filter_expression"' in prompt


def test_base_query_prompt_carries_current_date(composer, semantic_model):
    context = composer.build_shared_context(
        semantic_model.dimensions, semantic_model.measures
    )
    now = datetime(2024, 5, 17, 9, 30)
    prompt = composer.build_base_query_prompt(
        "sales by state",
        context,
        now,
        explore=ExploreRef(model_name="thelook", explore_id="order_items"),
    )
    assert prompt.startswith("The current date is 2024-05-17T09:30:00")
    assert "DO NOT add a model or a view" in prompt
    assert "looker_grid" in prompt
    assert "explore order_items of model thelook" in prompt
    assert _json_blocks(prompt) == 1
    assert prompt.rstrip().endswith("sales by state")


def test_summary_prompts(composer):
    table = "| orders.status | orders.count |\n|---|---|\n| complete | 10 |"
    assert table in composer.build_summary_prompt(table)
    slide = composer.build_slide_summary_prompt("Most orders are complete.")
    assert "Most orders are complete." in slide
    assert "slide presentation" in slide


def test_refine_prompt_embeds_current_config_and_fields(composer, semantic_model):
    params = ExploreParams(
        fields=["orders.status", "orders.created_date", "orders.count"],
        pivots=["orders.created_date"],
        vis_config={"type": "looker_column"},
    )
    used = UsedFields.from_params(params, semantic_model)
    assert used.dimensions == ["orders.status"]
    assert used.pivots == ["orders.created_date"]
    assert used.measures == ["orders.count"]

    prompt = composer.build_refine_prompt("make it red", params.vis_config, used)
    assert json.dumps({"type": "looker_column"}, indent=2) in prompt
    assert "- Measures: orders.count" in prompt
    assert '"make it red"' in prompt
    assert "Do not change the chart 'type' unless explicitly asked" in prompt
