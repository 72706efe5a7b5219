"""Field, filter and sort validation against an explore's lexicon.

This is the last gate between model output and the query service: anything
that is not a known field, or a filter expression that does not fit the
field's type, is dropped with a warning instead of being sent downstream.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Collection, Dict, Iterable, List, Optional

from ..capabilities.looker_api.models import DEFAULT_QUERY_LIMIT, ExploreParams
from ..capabilities.semantic.models import SemanticModel
from .vis_config import sanitize_vis_config

logger = logging.getLogger(__name__)


class FieldTypeFamily(str, Enum):
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    YESNO = "yesno"


# ---------------------------------------------------------------------------
# Field type families
# ---------------------------------------------------------------------------

_STRING_TYPES = {
    "string",
    "zipcode",
    "tier",
    "bin",
    "list",
    "date_day_of_week",
    "date_month_name",
    "date_quarter_of_year",
    "date_fiscal_quarter_of_year",
}

_NUMBER_TYPES = {
    "number",
    "int",
    "count",
    "count_distinct",
    "sum",
    "sum_distinct",
    "average",
    "average_distinct",
    "median",
    "median_distinct",
    "max",
    "min",
    "percentile",
    "percentile_distinct",
    "percent_of_total",
    "percent_of_previous",
    "running_total",
    "distance",
    "date_day_of_month",
    "date_day_of_year",
    "date_hour_of_day",
    "date_month_num",
    "date_week_of_year",
    "date_fiscal_month_num",
    "date_day_of_week_index",
}

_DATE_TYPES = {"date", "date_time", "datetime", "time", "timestamp"}


def field_type_family(field_type: Optional[str]) -> Optional[FieldTypeFamily]:
    """Map a semantic type tag to the filter grammar it accepts."""
    if not field_type:
        return None
    normalized = field_type.strip().lower()
    if normalized == "yesno":
        return FieldTypeFamily.YESNO
    if normalized in _STRING_TYPES:
        return FieldTypeFamily.STRING
    if normalized in _NUMBER_TYPES or normalized.startswith("duration"):
        return FieldTypeFamily.NUMBER
    if (
        normalized in _DATE_TYPES
        or normalized.startswith("date_")
        or normalized.startswith("time_")
    ):
        return FieldTypeFamily.DATE
    return None


# ---------------------------------------------------------------------------
# Grammar
# ---------------------------------------------------------------------------

_UNIT = r"(?:second|minute|hour|day|week|month|quarter|year|fiscal quarter|fiscal year)s?"
_WEEKDAY = r"(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday)"
_ABSOLUTE = (
    r"(?:\d{4}(?:[-/]\d{1,2}(?:[-/]\d{1,2}(?:[ t]\d{1,2}:\d{2}(?::\d{2})?)?)?)?"
    r"|\d{4}-q[1-4]"
    r"|fy\d{4}(?:-q[1-4])?)"
)
_POINT = (
    rf"(?:{_ABSOLUTE}"
    r"|today|yesterday|tomorrow|now"
    rf"|(?:this|last|next|previous) (?:{_UNIT}|{_WEEKDAY})"
    rf"|{_WEEKDAY}"
    rf"|\d+ {_UNIT} (?:ago|from now))"
)
_PERIOD = rf"(?:(?:last|next|past) )?\d+ (?:complete )?{_UNIT}"

_DATE_BRANCH_RE = re.compile(
    "^(?:"
    rf"{_POINT}"
    rf"|{_PERIOD}"
    rf"|(?:before|after|since|on or before|on or after) {_POINT}"
    rf"|{_POINT} to {_POINT}"
    rf"|{_POINT} for \d+ {_UNIT}"
    r"|(?:not )?null"
    ")$",
    re.ASCII,
)

_NUM = r"-?\d+(?:\.\d+)?"
_BOUND = rf"(?:{_NUM}|-?inf)"
_NUMBER_BRANCH_RE = re.compile(
    "^(?:"
    rf"(?:not )?{_NUM}"
    rf"|(?:<>|!=|=|>=|<=|>|<) ?{_NUM}"
    rf"|{_NUM} to {_NUM}"
    rf"|(?:>|>=) ?{_NUM} and (?:<|<=) ?{_NUM}"
    rf"|(?:<|<=) ?{_NUM} and (?:>|>=) ?{_NUM}"
    rf"|[\[(] ?{_BOUND} ?, ?{_BOUND} ?[\])]"
    r"|(?:not )?null"
    ")$",
    re.ASCII,
)

_YESNO_BRANCH_RE = re.compile(r"^(?:yes|no)$")
_DECIMAL_RE = re.compile(r"[0-9]+")

_SORT_DIRECTIONS = ("asc", "desc")


def _split_or_branches(expression: str) -> List[str]:
    """Split on top-level commas; ``^`` escapes, quotes and brackets bind."""
    branches: List[str] = []
    current: List[str] = []
    depth = 0
    in_quotes = False
    escaped = False
    for char in expression:
        if escaped:
            current.append(char)
            escaped = False
            continue
        if char == "^":
            current.append(char)
            escaped = True
            continue
        if char == '"':
            in_quotes = not in_quotes
        elif not in_quotes and char in "[(":
            depth += 1
        elif not in_quotes and char in "])":
            depth -= 1
        if char == "," and depth == 0 and not in_quotes:
            branches.append("".join(current))
            current = []
            continue
        current.append(char)
    branches.append("".join(current))
    return branches


def _normalize_branch(branch: str) -> str:
    return re.sub(r"\s+", " ", branch.strip().lower())


def _has_balanced_quotes(expression: str) -> bool:
    return expression.replace('^"', "").count('"') % 2 == 0


def is_member(name: Any, lexicon: Collection[str]) -> bool:
    return isinstance(name, str) and name in lexicon


def is_filter_valid(field_type: Optional[str], expression: Any) -> bool:
    """Decide whether ``expression`` is a legal filter for ``field_type``."""
    if not isinstance(expression, str) or not expression.strip():
        return False
    family = field_type_family(field_type)
    if family is None:
        return False
    if "\n" in expression or "\r" in expression:
        return False

    if family is FieldTypeFamily.STRING:
        if not _has_balanced_quotes(expression):
            return False
        return all(branch.strip() for branch in _split_or_branches(expression))

    pattern = {
        FieldTypeFamily.DATE: _DATE_BRANCH_RE,
        FieldTypeFamily.NUMBER: _NUMBER_BRANCH_RE,
        FieldTypeFamily.YESNO: _YESNO_BRANCH_RE,
    }[family]
    branches = [_normalize_branch(b) for b in _split_or_branches(expression)]
    return all(branch and pattern.match(branch) for branch in branches)


# ---------------------------------------------------------------------------
# Sorts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SortSpec:
    field: str
    direction: str = "asc"
    pivot_index: Optional[int] = None

    def render(self) -> str:
        token = f"{self.field} {self.direction}"
        if self.pivot_index is not None:
            token = f"{token} {self.pivot_index}"
        return token


def parse_sort(token: Any) -> Optional[SortSpec]:
    """Parse ``"field [asc|desc] [pivot-index]"``; malformed input gives None."""
    if not isinstance(token, str):
        return None
    parts = token.split()
    if not parts or len(parts) > 3:
        return None
    direction = "asc"
    if len(parts) >= 2:
        direction = parts[1].lower()
        if direction not in _SORT_DIRECTIONS:
            return None
    pivot_index: Optional[int] = None
    if len(parts) == 3:
        if not _DECIMAL_RE.fullmatch(parts[2]):
            return None
        pivot_index = int(parts[2])
    return SortSpec(field=parts[0], direction=direction, pivot_index=pivot_index)


def is_sort_valid(token: Any, lexicon: Collection[str]) -> bool:
    spec = parse_sort(token)
    return spec is not None and spec.field in lexicon


# ---------------------------------------------------------------------------
# Query specification sanitizing
# ---------------------------------------------------------------------------


def _as_name_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def _filter_names(values: Iterable[Any], lexicon: Collection[str], kind: str) -> List[str]:
    kept: List[str] = []
    removed: List[Any] = []
    for name in values:
        if is_member(name, lexicon):
            if name not in kept:
                kept.append(name)
        else:
            removed.append(name)
    if removed:
        logger.warning("Removed invalid %s generated by LLM: %s", kind, removed)
    return kept


def _join_expression(value: Any) -> Optional[str]:
    """Collapse a filter value (string or list of strings) to one expression."""
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (list, tuple)):
        parts = [v.strip() for v in value if isinstance(v, str) and v.strip()]
        return ",".join(parts) or None
    return None


def validate_filters(
    filters: Any, semantic_model: SemanticModel
) -> Dict[str, str]:
    """Keep filters whose field exists and whose expression fits its type."""
    if not isinstance(filters, dict):
        return {}
    valid: Dict[str, str] = {}
    for name, value in filters.items():
        field = semantic_model.find_field(name) if isinstance(name, str) else None
        if field is None:
            logger.warning("Invalid filter field: %s", name)
            continue
        expression = _join_expression(value)
        if expression is None or not is_filter_valid(field.type, expression):
            logger.warning(
                "Invalid filter expression for field %s: %r", name, value
            )
            continue
        valid[name] = expression
    return valid


def validate_filter_entries(
    entries: Any, semantic_model: SemanticModel
) -> Dict[str, str]:
    """Validate ``[{"field_id", "filter_expression"}]`` pairs from the model.

    Each expression is checked on its own; surviving expressions for the same
    field are OR-ed together with a comma.
    """
    if not isinstance(entries, list):
        return {}
    grouped: Dict[str, List[str]] = {}
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        field_id = entry.get("field_id")
        expression = entry.get("filter_expression")
        field = semantic_model.find_field(field_id) if isinstance(field_id, str) else None
        if field is None:
            logger.warning("Invalid filter field: %s", field_id)
            continue
        if not is_filter_valid(field.type, expression):
            logger.warning(
                "Invalid filter expression for field %s: %r", field_id, expression
            )
            continue
        grouped.setdefault(field_id, []).append(expression.strip())
    return {name: ",".join(expressions) for name, expressions in grouped.items()}


def validate_sorts(sorts: Any, lexicon: Collection[str]) -> List[str]:
    kept: List[str] = []
    removed: List[Any] = []
    seen = set()
    for token in _as_name_list(sorts):
        spec = parse_sort(token)
        if spec is None or spec.field not in lexicon:
            removed.append(token)
            continue
        # one direction per field and pivot column; the first wins
        key = (spec.field, spec.pivot_index)
        if key in seen:
            continue
        seen.add(key)
        kept.append(spec.render())
    if removed:
        logger.warning("Removed invalid sorts generated by LLM: %s", removed)
    return kept


def normalize_limit(limit: Any) -> str:
    if isinstance(limit, bool):
        return DEFAULT_QUERY_LIMIT
    if isinstance(limit, int) and limit > 0:
        return str(limit)
    if isinstance(limit, str) and _DECIMAL_RE.fullmatch(limit.strip()):
        value = int(limit.strip())
        if value > 0:
            return str(value)
    return DEFAULT_QUERY_LIMIT


def sanitize_explore_params(
    payload: Any, semantic_model: SemanticModel
) -> ExploreParams:
    """Turn an untrusted query object into a safe ExploreParams.

    ``model`` and ``view`` keys are ignored: the explore identity always comes
    from the host. Invalid entries are dropped, never raised.
    """
    data: Dict[str, Any] = dict(payload) if isinstance(payload, dict) else {}
    for key in ("model", "view"):
        if key in data:
            logger.debug("Ignoring %r key generated by LLM: %r", key, data.pop(key))

    lexicon = semantic_model.field_names
    return ExploreParams(
        fields=_filter_names(_as_name_list(data.get("fields")), lexicon, "fields"),
        filters=validate_filters(data.get("filters"), semantic_model),
        sorts=validate_sorts(data.get("sorts"), lexicon),
        limit=normalize_limit(data.get("limit")),
        pivots=_filter_names(_as_name_list(data.get("pivots")), lexicon, "pivots"),
        fill_fields=_filter_names(
            _as_name_list(data.get("fill_fields")), lexicon, "fill_fields"
        ),
        vis_config=sanitize_vis_config(data.get("vis_config")),
    )
