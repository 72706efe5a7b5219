"""Service-layer utilities."""

from .actions import (
    CRONTAB_BY_FREQUENCY,
    DashboardTileResult,
    ExploreActions,
    ScheduleResult,
    crontab_for,
    normalize_filters,
)
from .schema_directory import SchemaDirectory

__all__ = [
    "CRONTAB_BY_FREQUENCY",
    "DashboardTileResult",
    "ExploreActions",
    "ScheduleResult",
    "crontab_for",
    "normalize_filters",
    "SchemaDirectory",
]
