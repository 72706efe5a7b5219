"""
Explore assistant pipeline: one user message in, a validated explore query out.

Each turn runs as a small state machine:

    summarize prompt history ─┐
                              ├─> schema guard ─> branch by intent
    classify latest message ──┘

``explore``/``summary`` build a fresh query from two LLM calls (filters, then
the base query) and validate it against the live schema. ``dashboard``,
``schedule`` and ``refine`` work on the thread's prior query and end the turn.
Every failure ends up as a chat message in the thread.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from ..capabilities.looker_api import ExploreParams
from ..capabilities.semantic import ExploreRef, SemanticModel
from ..integrations.llm import LlmGateway
from ..prompts import PromptComposer, UsedFields
from ..services.actions import ExploreActions
from ..services.schema_directory import SchemaDirectory
from .errors import PreconditionError, TurnInProgressError, UpstreamServiceError
from .examples import ExampleLibrary
from .field_validator import sanitize_explore_params, validate_filter_entries
from .intent import DashboardAction, Intent, IntentResult
from .json_parser import parse_json
from .session import AssistantSession, Message, MessageActor, MessageType
from .vis_config import sanitize_vis_config

logger = logging.getLogger(__name__)

UNCLEAR_REQUEST_MESSAGE = (
    "I couldn't work out what to query from that. Could you rephrase the question?"
)
NOT_READY_MESSAGE = (
    "The semantic model for this explore is not loaded yet. Please wait a "
    "moment and try again, or select a different explore."
)
NO_QUERY_MESSAGE = (
    "There is no query in this conversation yet. Ask a question first, then "
    "save or schedule it."
)
MISSING_DASHBOARD_TITLE_MESSAGE = (
    "Please specify the name of the dashboard you want to add this tile to."
)
MISSING_EMAIL_MESSAGE = "Please provide an email address to schedule the report."
NOTHING_TO_REFINE_MESSAGE = (
    "I can't refine the visualization because there isn't one in the previous "
    "turn. Please ask a new question."
)
REFINE_FAILED_MESSAGE = (
    "I couldn't work out how to change the visualization. Please try "
    "rephrasing the request."
)
REFINED_PROMPT = "Visualization updated"


@dataclass
class TurnResult:
    """Outcome of one ``submit`` call."""

    intent: Optional[Intent] = None
    messages: List[Message] = field(default_factory=list)
    explore_params: Optional[ExploreParams] = None
    summarized_prompt: Optional[str] = None
    error: Optional[str] = None


def merge_explore_params(
    base_payload: Dict[str, Any],
    filter_entries: Any,
    semantic_model: SemanticModel,
) -> ExploreParams:
    """Validate the base query and overlay the separately extracted filters.

    Filter-step filters win over base-query filters for the same field.
    """
    params = sanitize_explore_params(base_payload, semantic_model)
    extracted = validate_filter_entries(filter_entries, semantic_model)
    if not extracted:
        return params
    return params.model_copy(update={"filters": {**params.filters, **extracted}})


class ExploreAssistant:
    """Orchestrates prompt building, LLM calls and validation for each turn.

    Args:
        schema_directory: Loaded semantic models per explore
        llm: Gateway used for every completion
        actions: Query, dashboard and schedule workflows
        composer: Prompt builder (optional)
        examples: Few-shot example library (optional)
        clock: Source of the current date for timeframe prompts (optional)
    """

    def __init__(
        self,
        schema_directory: SchemaDirectory,
        llm: LlmGateway,
        actions: ExploreActions,
        *,
        composer: Optional[PromptComposer] = None,
        examples: Optional[ExampleLibrary] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.schema_directory = schema_directory
        self.llm = llm
        self.actions = actions
        self.composer = composer or PromptComposer()
        self.examples = examples or ExampleLibrary()
        self.clock = clock

    # ------------------------------------------------------------------
    # Turn handling
    # ------------------------------------------------------------------

    async def submit(self, session: AssistantSession, text: str) -> TurnResult:
        """Run one user turn against the session's current explore.

        Raises:
            TurnInProgressError: if a turn is already running for the session
        """
        if session.is_querying:
            raise TurnInProgressError("A request is already in progress")

        session.is_querying = True
        result = TurnResult()
        try:
            await self._run_turn(session, text, result)
        except (PreconditionError, UpstreamServiceError) as e:
            logger.warning("Turn failed: %s", e.message)
            result.error = e.message
            self._reply(session, result, f"Error: {e.message}")
        except Exception as e:
            logger.exception("Unexpected error while handling turn")
            result.error = str(e) or "Something went wrong"
            self._reply(session, result, f"Error: {result.error}")
        finally:
            session.is_querying = False
        return result

    async def _run_turn(
        self, session: AssistantSession, text: str, result: TurnResult
    ) -> None:
        text = (text or "").strip()
        if not text:
            raise PreconditionError("Please enter a question")
        explore = session.explore
        if explore is None:
            raise PreconditionError("No explore selected")

        thread = session.thread
        if not thread.explore_key:
            thread.bind_explore(explore)
        thread.prompt_list.append(text)
        session.add_message(Message.user_text(text))

        summary, intent_result = await asyncio.gather(
            self.summarize_prompts(list(thread.prompt_list), explore.explore_key),
            self.classify_intent(text),
        )
        result.intent = intent_result.intent
        logger.info(
            "Turn on %s classified as %s", explore.explore_key, intent_result.intent.value
        )

        if not summary:
            self._reply(session, result, UNCLEAR_REQUEST_MESSAGE)
            return
        result.summarized_prompt = summary

        semantic_model = self.schema_directory.get(explore.explore_key)
        if semantic_model is None or not self.schema_directory.is_ready(
            explore.explore_key
        ):
            logger.error("Semantic model not loaded for explore: %s", explore.explore_key)
            self._reply(session, result, NOT_READY_MESSAGE)
            return

        if intent_result.intent == Intent.DASHBOARD:
            await self._handle_dashboard(session, explore, intent_result, result)
        elif intent_result.intent == Intent.SCHEDULE:
            await self._handle_schedule(session, explore, intent_result, result)
        elif intent_result.intent == Intent.REFINE:
            await self._handle_refine(session, text, semantic_model, result)
        else:
            await self._handle_query(
                session, explore, summary, semantic_model, intent_result, result
            )

    def _reply(
        self,
        session: AssistantSession,
        result: TurnResult,
        text: str,
        markdown: bool = False,
    ) -> Message:
        message = session.add_message(Message.system_text(text, markdown=markdown))
        result.messages.append(message)
        return message

    def _emit(
        self, session: AssistantSession, result: TurnResult, message: Message
    ) -> None:
        session.add_message(message)
        result.messages.append(message)
        result.explore_params = message.explore_params

    # ------------------------------------------------------------------
    # Intent branches
    # ------------------------------------------------------------------

    async def _handle_query(
        self,
        session: AssistantSession,
        explore: ExploreRef,
        summary: str,
        semantic_model: SemanticModel,
        intent_result: IntentResult,
        result: TurnResult,
    ) -> None:
        params = await self.generate_explore_params(summary, semantic_model)

        thread = session.thread
        thread.explore_params = params
        thread.summarized_prompt = summary

        if intent_result.intent == Intent.SUMMARY:
            message = Message(
                actor=MessageActor.SYSTEM,
                type=MessageType.SUMMARIZE,
                explore_params=params,
                summarized_prompt=summary,
            )
            message.summary = await self.summarize_explore(explore, params)
        else:
            message = Message(
                actor=MessageActor.SYSTEM,
                type=MessageType.EXPLORE,
                explore_params=params,
                summarized_prompt=summary,
            )
        self._emit(session, result, message)

    async def _handle_dashboard(
        self,
        session: AssistantSession,
        explore: ExploreRef,
        intent_result: IntentResult,
        result: TurnResult,
    ) -> None:
        params = session.thread.explore_params
        if params is None:
            self._reply(session, result, NO_QUERY_MESSAGE)
            return

        meta = intent_result.meta
        action = meta.action or DashboardAction.ADD
        if action == DashboardAction.CREATE:
            created = await self.actions.add_to_new_dashboard(explore, params, meta.title)
            self._reply(
                session,
                result,
                f'Created new dashboard "[{created.dashboard.title}]'
                f'(/dashboards/{created.dashboard.id})" and added tile.',
                markdown=True,
            )
            return

        if not meta.title:
            self._reply(session, result, MISSING_DASHBOARD_TITLE_MESSAGE)
            return

        added = await self.actions.add_to_existing_dashboard(explore, params, meta.title)
        if added is None:
            self._reply(session, result, f'Could not find dashboard "{meta.title}".')
            return
        self._reply(
            session,
            result,
            f'Added tile to dashboard "[{added.dashboard.title}]'
            f'(/dashboards/{added.dashboard.id})".',
            markdown=True,
        )

    async def _handle_schedule(
        self,
        session: AssistantSession,
        explore: ExploreRef,
        intent_result: IntentResult,
        result: TurnResult,
    ) -> None:
        params = session.thread.explore_params
        if params is None:
            self._reply(session, result, NO_QUERY_MESSAGE)
            return

        meta = intent_result.meta
        if not meta.email:
            self._reply(session, result, MISSING_EMAIL_MESSAGE)
            return

        scheduled = await self.actions.schedule_delivery(
            explore, params, meta.email, meta.frequency
        )
        self._reply(
            session,
            result,
            f"Scheduled report to {meta.email} ({scheduled.frequency}).",
        )

    async def _handle_refine(
        self,
        session: AssistantSession,
        text: str,
        semantic_model: SemanticModel,
        result: TurnResult,
    ) -> None:
        last = session.thread.last_explore_message()
        if last is None or last.explore_params is None:
            self._reply(session, result, NOTHING_TO_REFINE_MESSAGE)
            return

        previous = last.explore_params
        vis_config = await self.refine_vis_config(
            text, previous.vis_config, UsedFields.from_params(previous, semantic_model)
        )
        if not vis_config:
            self._reply(session, result, REFINE_FAILED_MESSAGE)
            return

        refined = previous.model_copy(update={"vis_config": vis_config})
        session.thread.explore_params = refined
        self._emit(
            session,
            result,
            Message(
                actor=MessageActor.SYSTEM,
                type=MessageType.EXPLORE,
                explore_params=refined,
                summarized_prompt=REFINED_PROMPT,
            ),
        )

    # ------------------------------------------------------------------
    # LLM stages
    # ------------------------------------------------------------------

    async def summarize_prompts(self, prompt_list: List[str], explore_key: str) -> str:
        """Collapse the running prompt history into one question."""
        prompt = self.composer.build_prompt_summary_prompt(
            prompt_list, self.examples.refinement_examples(explore_key)
        )
        return (await self.llm.complete(prompt)).strip()

    async def classify_intent(self, text: str) -> IntentResult:
        response = await self.llm.complete(self.composer.build_intent_prompt(text))
        return IntentResult.from_payload(parse_json(response))

    async def generate_explore_params(
        self, question: str, semantic_model: SemanticModel
    ) -> ExploreParams:
        """Build a validated query from a filter call and a base-query call."""
        shared_context = self.composer.build_shared_context(
            semantic_model.dimensions,
            semantic_model.measures,
            self.examples.generation_examples(semantic_model.explore_key),
            explore=semantic_model.explore,
        )

        filter_response = await self.llm.complete(
            self.composer.build_filter_prompt(question, shared_context)
        )
        base_response = await self.llm.complete(
            self.composer.build_base_query_prompt(
                question,
                shared_context,
                self.clock(),
                explore=semantic_model.explore,
            )
        )

        params = merge_explore_params(
            parse_json(base_response),
            parse_json(filter_response).get("filters"),
            semantic_model,
        )
        logger.info(
            "Generated query on %s: %s fields, %s filters",
            semantic_model.explore_key,
            len(params.fields),
            len(params.filters),
        )
        return params

    async def refine_vis_config(
        self,
        text: str,
        current_vis_config: Dict[str, Any],
        used_fields: UsedFields,
    ) -> Dict[str, Any]:
        """Return the modified vis config, or ``{}`` if none could be parsed."""
        response = await self.llm.complete(
            self.composer.build_refine_prompt(text, current_vis_config, used_fields)
        )
        payload = parse_json(response)
        if not payload:
            return {}
        return sanitize_vis_config(payload, fallback=current_vis_config)

    async def summarize_explore(self, explore: ExploreRef, params: ExploreParams) -> str:
        """Run the query, summarize the rows, then condense for a slide."""
        tabular = await self.actions.run_query(explore, params)
        summary = await self.llm.complete(self.composer.build_summary_prompt(tabular))
        if not summary.strip():
            return ""
        return await self.llm.complete(self.composer.build_slide_summary_prompt(summary))
