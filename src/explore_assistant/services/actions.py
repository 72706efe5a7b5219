"""Dashboard and scheduled-delivery workflows for an existing query."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel

from ..capabilities.looker_api import (
    DEFAULT_QUERY_LIMIT,
    DEFAULT_VIS_TYPE,
    Dashboard,
    DashboardElement,
    DashboardService,
    ExploreParams,
    QueryHandle,
    QueryService,
    ScheduledPlan,
    SchedulingService,
)
from ..capabilities.semantic import ExploreRef

logger = logging.getLogger(__name__)

DEFAULT_DASHBOARD_TITLE = "New Dashboard"
DEFAULT_TILE_TITLE = "New Tile"
DEFAULT_SCHEDULE_TITLE = "Scheduled Report"
DEFAULT_SCHEDULE_FORMAT = "csv_zip"
DEFAULT_FREQUENCY = "daily"

CRONTAB_BY_FREQUENCY: Dict[str, str] = {
    "hourly": "0 * * * *",
    "daily": "0 6 * * *",
    "weekly": "0 6 * * 1",
    "monthly": "0 6 1 * *",
}


def crontab_for(frequency: Optional[str]) -> str:
    """Crontab for a spoken frequency; unknown values run daily at 6am."""
    key = (frequency or DEFAULT_FREQUENCY).strip().lower()
    return CRONTAB_BY_FREQUENCY.get(key, CRONTAB_BY_FREQUENCY[DEFAULT_FREQUENCY])


def normalize_filters(filters: Dict[str, Any]) -> Dict[str, str]:
    """Join list values with ``,`` (OR) and drop empty expressions."""
    normalized: Dict[str, str] = {}
    for name, value in (filters or {}).items():
        if isinstance(value, str):
            if value.strip():
                normalized[name] = value
        elif isinstance(value, (list, tuple)):
            parts = [v for v in value if isinstance(v, str) and v.strip()]
            if parts:
                normalized[name] = ",".join(parts)
    return normalized


class DashboardTileResult(BaseModel):
    dashboard: Dashboard
    query: QueryHandle
    element: DashboardElement


class ScheduleResult(BaseModel):
    query: QueryHandle
    plan: ScheduledPlan
    frequency: str


class ExploreActions:
    """Turns a thread's query into saved BI platform artifacts."""

    def __init__(
        self,
        query_service: QueryService,
        dashboard_service: DashboardService,
        scheduling_service: SchedulingService,
    ):
        self.query_service = query_service
        self.dashboard_service = dashboard_service
        self.scheduling_service = scheduling_service

    async def create_query(
        self, explore: ExploreRef, params: ExploreParams
    ) -> QueryHandle:
        prepared = ExploreParams(
            fields=list(params.fields),
            filters=normalize_filters(params.filters),
            sorts=list(params.sorts),
            limit=params.limit or DEFAULT_QUERY_LIMIT,
            pivots=list(params.pivots),
            fill_fields=list(params.fill_fields),
            vis_config=dict(params.vis_config) or {"type": DEFAULT_VIS_TYPE},
        )
        query = await self.query_service.create_query(explore, prepared)
        logger.info("Created query %s on %s", query.id, explore.explore_key)
        return query

    async def run_query(
        self, explore: ExploreRef, params: ExploreParams, result_format: str = "md"
    ) -> str:
        query = await self.create_query(explore, params)
        return await self.query_service.run_query(query.id, result_format)

    async def add_to_new_dashboard(
        self,
        explore: ExploreRef,
        params: ExploreParams,
        title: Optional[str] = None,
    ) -> DashboardTileResult:
        dashboard = await self.dashboard_service.create_dashboard(
            title or DEFAULT_DASHBOARD_TITLE
        )
        return await self._add_tile(
            dashboard, explore, params, title or DEFAULT_TILE_TITLE
        )

    async def add_to_existing_dashboard(
        self, explore: ExploreRef, params: ExploreParams, title: str
    ) -> Optional[DashboardTileResult]:
        """Add a tile to the dashboard titled ``title`` (case-insensitive).

        Returns None when no such dashboard exists.
        """
        dashboard = await self.find_dashboard(title)
        if dashboard is None:
            logger.warning("Dashboard %r not found", title)
            return None
        return await self._add_tile(dashboard, explore, params, DEFAULT_TILE_TITLE)

    async def find_dashboard(self, title: str) -> Optional[Dashboard]:
        wanted = title.strip().lower()
        for dashboard in await self.dashboard_service.list_dashboards():
            if (dashboard.title or "").lower() == wanted:
                return dashboard
        return None

    async def schedule_delivery(
        self,
        explore: ExploreRef,
        params: ExploreParams,
        email: str,
        frequency: Optional[str] = None,
        title: str = DEFAULT_SCHEDULE_TITLE,
    ) -> ScheduleResult:
        query = await self.create_query(explore, params)
        plan = await self.scheduling_service.create_scheduled_plan(
            query_id=query.id,
            title=title,
            email_address=email,
            result_format=DEFAULT_SCHEDULE_FORMAT,
            crontab=crontab_for(frequency),
        )
        return ScheduleResult(
            query=query, plan=plan, frequency=frequency or DEFAULT_FREQUENCY
        )

    async def _add_tile(
        self,
        dashboard: Dashboard,
        explore: ExploreRef,
        params: ExploreParams,
        tile_title: str,
    ) -> DashboardTileResult:
        query = await self.create_query(explore, params)
        element = await self.dashboard_service.add_tile(
            dashboard.id, query.id, tile_title
        )
        return DashboardTileResult(dashboard=dashboard, query=query, element=element)
