"""BI platform API capability exports."""

from .base import (
    DashboardService,
    LookerBackend,
    QueryService,
    SchedulingService,
    UserAttributeSource,
)
from .models import (
    DEFAULT_QUERY_LIMIT,
    DEFAULT_VIS_TYPE,
    Dashboard,
    DashboardElement,
    ExploreParams,
    QueryHandle,
    ScheduledPlan,
)

__all__ = [
    "DashboardService",
    "LookerBackend",
    "QueryService",
    "SchedulingService",
    "UserAttributeSource",
    "DEFAULT_QUERY_LIMIT",
    "DEFAULT_VIS_TYPE",
    "Dashboard",
    "DashboardElement",
    "ExploreParams",
    "QueryHandle",
    "ScheduledPlan",
]
