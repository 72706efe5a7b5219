"""Interfaces for the BI platform's query, dashboard and scheduling APIs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from ..semantic.base import SchemaSource
from ..semantic.models import ExploreRef
from .models import (
    Dashboard,
    DashboardElement,
    ExploreParams,
    QueryHandle,
    ScheduledPlan,
)


class QueryService(ABC):
    """Creates and runs queries against an explore."""

    @abstractmethod
    async def create_query(
        self, explore: ExploreRef, params: ExploreParams
    ) -> QueryHandle:
        """Register a query and return its handle."""
        pass

    @abstractmethod
    async def run_query(self, query_id: str, result_format: str = "md") -> str:
        """Run a saved query and return the result rendered as text."""
        pass


class DashboardService(ABC):
    """Dashboard lookup, creation and tile management."""

    @abstractmethod
    async def list_dashboards(self) -> List[Dashboard]:
        pass

    @abstractmethod
    async def create_dashboard(
        self, title: str, description: str = ""
    ) -> Dashboard:
        pass

    @abstractmethod
    async def add_tile(
        self, dashboard_id: str, query_id: str, title: str
    ) -> DashboardElement:
        pass


class SchedulingService(ABC):
    """Recurring delivery of query results."""

    @abstractmethod
    async def create_scheduled_plan(
        self,
        query_id: str,
        title: str,
        email_address: str,
        result_format: str,
        crontab: str,
    ) -> ScheduledPlan:
        pass


class UserAttributeSource(ABC):
    """Host-provided per-user attributes (model name, API key, ...)."""

    @abstractmethod
    async def get_user_attribute(self, name: str) -> Optional[str]:
        """Return the attribute value for the current user, if set."""
        pass


class LookerBackend(
    SchemaSource,
    QueryService,
    DashboardService,
    SchedulingService,
    UserAttributeSource,
):
    """Every BI platform capability the assistant consumes, in one object."""
