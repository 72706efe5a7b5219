"""In-memory Looker adapter used as a golden reference implementation."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from ...capabilities.looker_api import (
    Dashboard,
    DashboardElement,
    ExploreParams,
    LookerBackend,
    QueryHandle,
    ScheduledPlan,
)
from ...capabilities.semantic import (
    ExploreDescription,
    ExploreRef,
    LookmlExplore,
    LookmlModel,
)
from ...core.errors import UpstreamServiceError


def _default_models() -> List[LookmlModel]:
    return [
        LookmlModel(
            name="thelook",
            explores=[
                LookmlExplore(name="order_items", label="Order Items"),
                LookmlExplore(name="users", label="Users"),
                LookmlExplore(name="pdt_debug", label="PDT Debug", hidden=True),
            ],
        )
    ]


def _default_descriptions() -> Dict[str, ExploreDescription]:
    return {
        "thelook:order_items": ExploreDescription(
            dimensions=[
                {"name": "orders.created_date", "type": "date", "label": "Created Date"},
                {"name": "orders.status", "type": "string", "label": "Status"},
                {"name": "users.state", "type": "string", "label": "State"},
                {"name": "products.category", "type": "string", "label": "Category"},
                {"name": "orders.is_returned", "type": "yesno", "label": "Is Returned"},
                {"name": "orders.internal_id", "type": "number", "hidden": True},
            ],
            measures=[
                {"name": "orders.count", "type": "count", "label": "Count"},
                {"name": "order_items.total_sale_price", "type": "sum", "label": "Total Sale Price"},
            ],
        ),
        "thelook:users": ExploreDescription(
            dimensions=[{"name": "users.state", "type": "string", "label": "State"}],
            measures=[{"name": "users.count", "type": "count", "label": "Count"}],
        ),
    }


class MockLookerAdapter(LookerBackend):
    """Deterministic, in-memory stand-in for the Looker API.

    Every mutating call is recorded in ``calls`` so tests can assert on what
    the pipeline did (or did not) do.

    Args:
        models: Model listing; defaults to a small "thelook" catalog.
        descriptions: Field listings keyed by "model:explore".
        failing_explores: "model:explore" -> HTTP status to fail with.
        query_results: Rendered result text keyed by query id.
        user_attributes: Attribute values for the current user.
    """

    def __init__(
        self,
        models: Optional[List[LookmlModel]] = None,
        descriptions: Optional[Dict[str, ExploreDescription]] = None,
        failing_explores: Optional[Dict[str, int]] = None,
        query_results: Optional[Dict[str, str]] = None,
        dashboards: Optional[List[Dashboard]] = None,
        user_attributes: Optional[Dict[str, str]] = None,
    ):
        self.models = models if models is not None else _default_models()
        self.descriptions = (
            descriptions if descriptions is not None else _default_descriptions()
        )
        self.failing_explores = dict(failing_explores or {})
        self.query_results = dict(query_results or {})
        self.dashboards: List[Dashboard] = list(dashboards or [])
        self.user_attributes = dict(user_attributes or {})

        self.queries: Dict[str, Tuple[ExploreRef, ExploreParams]] = {}
        self.elements: List[DashboardElement] = []
        self.plans: List[ScheduledPlan] = []
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    def calls_to(self, method: str) -> List[Dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == method]

    # SchemaSource

    async def list_models(self) -> List[LookmlModel]:
        return list(self.models)

    async def describe_explore(
        self, model_name: str, explore_id: str
    ) -> ExploreDescription:
        key = f"{model_name}:{explore_id}"
        if key in self.failing_explores:
            status = self.failing_explores[key]
            raise UpstreamServiceError(
                f"Explore {key} failed with {status}", status=status, service="looker"
            )
        if key not in self.descriptions:
            raise UpstreamServiceError(
                f"Explore {key} not found", status=404, service="looker"
            )
        return self.descriptions[key]

    # QueryService

    async def create_query(
        self, explore: ExploreRef, params: ExploreParams
    ) -> QueryHandle:
        query_id = str(len(self.queries) + 1)
        self.queries[query_id] = (explore, params)
        self.calls.append(
            ("create_query", {"explore": explore.explore_key, "params": params})
        )
        return QueryHandle(id=query_id, client_id=f"mock{query_id}")

    async def run_query(self, query_id: str, result_format: str = "md") -> str:
        self.calls.append(
            ("run_query", {"query_id": query_id, "result_format": result_format})
        )
        if query_id in self.query_results:
            return self.query_results[query_id]
        _, params = self.queries[query_id]
        header = "| " + " | ".join(params.fields) + " |"
        return f"{header}\n|{'---|' * len(params.fields)}"

    # DashboardService

    async def list_dashboards(self) -> List[Dashboard]:
        return list(self.dashboards)

    async def create_dashboard(self, title: str, description: str = "") -> Dashboard:
        dashboard = Dashboard(id=str(100 + len(self.dashboards)), title=title)
        self.dashboards.append(dashboard)
        self.calls.append(("create_dashboard", {"title": title}))
        return dashboard

    async def add_tile(
        self, dashboard_id: str, query_id: str, title: str
    ) -> DashboardElement:
        element = DashboardElement(
            id=str(len(self.elements) + 1),
            dashboard_id=dashboard_id,
            query_id=query_id,
            title=title,
        )
        self.elements.append(element)
        self.calls.append(
            ("add_tile", {"dashboard_id": dashboard_id, "query_id": query_id, "title": title})
        )
        return element

    # SchedulingService

    async def create_scheduled_plan(
        self,
        query_id: str,
        title: str,
        email_address: str,
        result_format: str,
        crontab: str,
    ) -> ScheduledPlan:
        plan = ScheduledPlan(
            id=str(len(self.plans) + 1),
            name=title,
            query_id=query_id,
            crontab=crontab,
            destinations=[
                {"format": result_format, "type": "email", "address": email_address}
            ],
        )
        self.plans.append(plan)
        self.calls.append(
            (
                "create_scheduled_plan",
                {"query_id": query_id, "email": email_address, "crontab": crontab},
            )
        )
        return plan

    # UserAttributeSource

    async def get_user_attribute(self, name: str) -> Optional[str]:
        return self.user_attributes.get(name)
