"""Query specification and BI platform resource models."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_QUERY_LIMIT = "500"
DEFAULT_VIS_TYPE = "looker_grid"


class ExploreParams(BaseModel):
    """Executable query specification for one explore.

    The explore identity (model/view) is not part of the query: it is supplied by
    the host session when the query is created.
    """

    model_config = ConfigDict(extra="ignore")

    fields: List[str] = Field(default_factory=list)
    filters: Dict[str, str] = Field(
        default_factory=dict,
        description="Field name -> filter expression (comma = logical OR)",
    )
    sorts: List[str] = Field(default_factory=list)
    limit: Optional[str] = DEFAULT_QUERY_LIMIT
    pivots: List[str] = Field(default_factory=list)
    fill_fields: List[str] = Field(default_factory=list)
    vis_config: Dict[str, Any] = Field(
        default_factory=lambda: {"type": DEFAULT_VIS_TYPE}
    )

    def referenced_fields(self) -> List[str]:
        """Every field name the query touches, in first-seen order."""
        names: List[str] = []
        for name in [
            *self.fields,
            *self.filters.keys(),
            *(s.split(" ")[0] for s in self.sorts),
            *self.pivots,
            *self.fill_fields,
        ]:
            if name not in names:
                names.append(name)
        return names


class QueryHandle(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    client_id: Optional[str] = None


class Dashboard(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    title: str = ""


class DashboardElement(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: Optional[str] = None
    dashboard_id: str
    query_id: str
    title: str = ""
    type: str = "vis"


class ScheduledPlan(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: Optional[str] = None
    name: str
    query_id: str
    crontab: str
    destinations: List[Dict[str, Any]] = Field(default_factory=list)
