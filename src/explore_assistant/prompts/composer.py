"""
Prompt composer: grounded prompts for each pipeline stage.

The shared context concatenates static reference documentation, the live
dimension/measure catalogue of the explore and a bounded set of few-shot
examples. Every prompt that expects structured output shows exactly one
literal example of that structure and asks for nothing else.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from ..capabilities.looker_api.models import ExploreParams
from ..capabilities.semantic.models import ExploreRef, Field, SemanticModel
from ..core.errors import PreconditionError
from ..core.examples import GenerationExample, RefinementExample
from ..core.vis_config import VALID_VIS_TYPES
from .documents import (
    FILTER_DOC,
    INTERVAL_TIMEFRAME_DOC,
    PIVOTS_URL_PARAMETERS_DOC,
    QUERY_OBJECT_FORMAT,
    VISUALIZATION_DOC,
)

_FIELD_TABLE_HEADER = (
    "| Field Id | Field Type | Label | Description | Tags |\n"
    "|----------|------------|-------|-------------|------|"
)

_INTENT_EXAMPLE = {
    "intent": "dashboard",
    "meta": {
        "title": "Sales Overview",
        "action": "add",
        "email": None,
        "frequency": None,
    },
}

_FILTER_EXAMPLE = {
    "filters": [
        {"field_id": "orders.created_date", "filter_expression": "this year"},
        {"field_id": "orders.status", "filter_expression": "complete"},
    ]
}

_BASE_QUERY_EXAMPLE = {
    "fields": [
        "category.name",
        "inventory_items.days_in_inventory_tier",
        "products.count",
    ],
    "filters": {"category.name": "socks"},
    "sorts": ["products.count desc"],
    "limit": "500",
    "vis_config": {"type": "looker_column"},
}

_REFINE_EXAMPLE = {
    "type": "looker_bar",
    "series_colors": {"orders.count": "#FF0000"},
}


def _cell(value: str) -> str:
    return value.replace("|", "\\|").replace("\n", " ").strip()


def format_field_row(field: Field) -> str:
    tags = ", ".join(field.tags)
    return (
        f"| {_cell(field.name)} | {_cell(field.type)} | {_cell(field.label)} "
        f"| {_cell(field.description)} | {_cell(tags)} |"
    )


@dataclass
class UsedFields:
    """Fields of an existing query, grouped for the refine prompt."""

    dimensions: List[str] = field(default_factory=list)
    pivots: List[str] = field(default_factory=list)
    measures: List[str] = field(default_factory=list)

    @classmethod
    def from_params(
        cls, params: ExploreParams, semantic_model: SemanticModel
    ) -> "UsedFields":
        measure_names = semantic_model.measure_names
        return cls(
            dimensions=[
                f
                for f in params.fields
                if f not in params.pivots and f not in measure_names
            ],
            pivots=list(params.pivots),
            measures=[f for f in params.fields if f in measure_names],
        )


class PromptComposer:
    """Builds the prompt strings for every pipeline stage."""

    def __init__(self, *, max_examples: int = 20) -> None:
        self.max_examples = max_examples

    # ------------------------------------------------------------------
    # Shared context
    # ------------------------------------------------------------------

    def build_shared_context(
        self,
        dimensions: Sequence[Field],
        measures: Sequence[Field],
        few_shot_examples: Optional[Sequence[GenerationExample]] = None,
        explore: Optional[ExploreRef] = None,
    ) -> str:
        """Docs + schema catalogue + few-shot examples.

        Raises:
            PreconditionError: if either dimensions or measures is empty.
        """
        if not dimensions or not measures:
            raise PreconditionError("Dimensions or measures are not defined")

        examples = list(few_shot_examples or [])[: self.max_examples]
        example_text = "\n".join(
            f'input: "{item.input}" ; output: {json.dumps(item.output)}'
            for item in examples
        )
        explore_lines = ""
        if explore is not None:
            explore_lines = (
                f"Model: {explore.model_name}\nExplore: {explore.explore_id}\n"
            )
        dimension_rows = "\n".join(format_field_row(f) for f in dimensions)
        measure_rows = "\n".join(format_field_row(f) for f in measures)

        return f"""# Documentation
{FILTER_DOC}
{INTERVAL_TIMEFRAME_DOC}
{VISUALIZATION_DOC}
{PIVOTS_URL_PARAMETERS_DOC}
{QUERY_OBJECT_FORMAT}
# End Documentation

# Metadata
This information is particular to the current data model. Only the fields below can be used in the response.
{explore_lines}
Dimensions are used to group by information (follow the instructions in tags when using a specific field; if a map is used include a location or lat/long dimension):

{_FIELD_TABLE_HEADER}
{dimension_rows}

Measures are used to perform calculations (if top, bottom, total, sum, etc. are used include a measure):

{_FIELD_TABLE_HEADER}
{measure_rows}
# End Metadata

# Examples
The examples below include fields, filters and sometimes visualization configs.
They were taken at a different date: ALL DATE RANGES ARE WRONG compared to the current date.
Do not copy the examples 1:1; adapt timeframes and date ranges.
{example_text}
# End Examples
"""

    # ------------------------------------------------------------------
    # Stage prompts
    # ------------------------------------------------------------------

    def build_prompt_summary_prompt(
        self,
        prompt_list: Sequence[str],
        refinement_examples: Optional[Sequence[RefinementExample]] = None,
    ) -> str:
        """Collapse the running prompt history into one question."""
        example_lines = "\n".join(
            "- The sequence of prompts from the user: "
            + ", ".join(f'"{p}"' for p in item.input)
            + f'. The summarized prompt: "{item.output}"'
            for item in list(refinement_examples or [])[: self.max_examples]
        )
        conversation = "\n".join(f'{i + 1}. "{p}"' for i, p in enumerate(prompt_list))
        return f"""Primer
----------
A user is interactively asking questions to build a data query. The user refines the question by adding more context across several prompts. Later prompts may conflict with or repeat earlier ones: in those cases, prefer the most recent prompt. Do not merge conflicting requests into a union.

Here are examples of prompt sequences and how to summarize them:
{example_lines}

Conversation so far (oldest first, the last one is the most recent)
----------
{conversation}

Task
----------
Summarize the prompts above into a single question that includes all the relevant information. When information conflicts, keep only what the most recent prompt says.

Only return the summarized question with no extra explanation or text.
"""

    def build_intent_prompt(self, user_text: str) -> str:
        return f"""Primer
----------
A user is interacting with an agent that translates questions into structured data queries. Look at one message and determine the user's intent.

Task
----------
Determine if the user is:
1. "summary": asking for a data summary (e.g. "summarize the data", "explain this")
2. "dashboard": asking to save or add to a dashboard (e.g. "add to dashboard Sales", "save as New Dashboard")
3. "schedule": asking to schedule a report (e.g. "schedule daily to user@example.com")
4. "refine": asking to change the existing visualization (e.g. "make it a bar chart", "change the color to red")
5. "explore": asking a new data question or refining the query (e.g. "show revenue", "filter by year")

For "dashboard" set meta.title to the dashboard title and meta.action to "create" for a new dashboard or "add" for an existing one.
For "schedule" set meta.email to the recipient and meta.frequency (e.g. "daily", "weekly").
Use null for anything the user did not say. Do not guess.

The user said:
{user_text}

Output
----------
Return a JSON object in exactly this format:
{json.dumps(_INTENT_EXAMPLE, indent=2)}

Only return the JSON object.
"""

    def build_filter_prompt(self, user_text: str, shared_context: str) -> str:
        return f"""{shared_context}

# Instructions

The user asked the following question:

```
{user_text}
```

Follow the steps below and generate a JSON object.

* Step 1: Determine the filters the question implies. Each filter is a pair of a field id and a filter expression.
* Step 2: Verify that you only use valid expressions for the field's type, as documented above. If you are unsure, leave the filter out.
* Step 3: Verify that every field id is a Field Id from the tables above (it contains a period). Leave out anything else.

Return a JSON object in exactly this format (use an empty list when no filter applies):
{json.dumps(_FILTER_EXAMPLE, indent=2)}

Only return the JSON object.
"""

    def build_base_query_prompt(
        self,
        user_text: str,
        shared_context: str,
        current_datetime: datetime,
        explore: Optional[ExploreRef] = None,
    ) -> str:
        stamp = current_datetime.isoformat()
        explore_line = ""
        if explore is not None:
            explore_line = f"The query runs against explore {explore.explore_id} of model {explore.model_name}.\n"
        return f"""The current date is {stamp}

{shared_context}

Output
----------
{explore_line}Return a JSON query object as documented above. Here is an example:

{json.dumps(_BASE_QUERY_EXAMPLE, indent=2)}

Instructions:
- DO NOT add a model or a view, they are not needed in the response.
- Choose vis_config.type from: {", ".join(VALID_VIS_TYPES)}. Default to looker_grid if unsure.
- Choose only fields from the metadata tables above.
- Prioritize the field description, label, tags and name when picking fields.
- Generate only one answer.
- Use the examples for guidance on how to structure the body.
- Avoid dynamic_fields.
- Always use the current date ({stamp}) for timeframes.
- Only return the JSON object.

User Request
----------
{user_text}
"""

    def build_summary_prompt(self, tabular_result: str) -> str:
        return f"""Data
----------
{tabular_result}

Task
----------
Summarize the data above.
"""

    def build_slide_summary_prompt(self, summary: str) -> str:
        return f"""The following text summarizes the data of a query.
Summaries: {summary}

Make this much more concise for a slide presentation. Return a markdown document made of sections. Each section has a title (the title of that part of the summary) and a list of key points. Include the supporting data in each section. Include each summary only once.
"""

    def build_refine_prompt(
        self,
        user_text: str,
        current_vis_config: Dict[str, Any],
        used_fields: UsedFields,
    ) -> str:
        return f"""# Task
You are an expert in visualization configuration. Modify an existing visualization config JSON based on the user's request.
- Only modify the properties relevant to the request.
- Do not change the chart 'type' unless explicitly asked to. Valid types: {", ".join(VALID_VIS_TYPES)}.

# Context
The existing visualization config:
```json
{json.dumps(current_vis_config, indent=2)}
```

Fields used in the query, which may be relevant for colouring specific series:
- Dimensions: {", ".join(used_fields.dimensions)}
- Pivots: {", ".join(used_fields.pivots)}
- Measures: {", ".join(used_fields.measures)}

# User Request
"{user_text}"

# Output
Return the complete, modified visualization config as one JSON object, for example:
{json.dumps(_REFINE_EXAMPLE, indent=2)}

Only return the JSON object.
"""
