"""Visualization config catalogue and validators."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from jsonschema import validate
from jsonschema.exceptions import ValidationError as JsonSchemaValidationError

from ..capabilities.looker_api.models import DEFAULT_VIS_TYPE

logger = logging.getLogger(__name__)


VALID_VIS_TYPES: Tuple[str, ...] = (
    "looker_column",
    "looker_bar",
    "looker_line",
    "looker_pie",
    "looker_area",
    "looker_scatter",
    "single_value",
    "looker_grid",
)

# Tags models are known to produce for a valid type.
VIS_TYPE_CORRECTIONS: Dict[str, str] = {
    "looker_single_value": "single_value",
}

VIS_CONFIG_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["type"],
    "properties": {
        "type": {"type": "string", "enum": list(VALID_VIS_TYPES)},
        "series_colors": {
            "type": "object",
            "additionalProperties": {"type": "string"},
        },
        "colors": {"type": "array", "items": {"type": "string"}},
        "show_value_labels": {"type": "boolean"},
        "show_view_names": {"type": "boolean"},
        "stacking": {"type": "string"},
        "legend_position": {"type": "string"},
    },
    "additionalProperties": True,
}

_DANGEROUS_TOKENS = ("javascript:", "<script", "Function(", "eval(")


def _assert_safe_payload(value: Any) -> None:
    """Reject obvious executable payload vectors in vis configs."""
    if isinstance(value, dict):
        for key, child in value.items():
            if isinstance(key, str) and key.lower() == "url":
                raise ValueError("Vis configs with external URL sources are blocked.")
            _assert_safe_payload(child)
    elif isinstance(value, list):
        for child in value:
            _assert_safe_payload(child)
    elif isinstance(value, str):
        lowered = value.lower()
        for token in _DANGEROUS_TOKENS:
            if token.lower() in lowered:
                raise ValueError("Vis config contains blocked executable token content.")


def correct_vis_type(vis_type: Any) -> Any:
    if isinstance(vis_type, str):
        return VIS_TYPE_CORRECTIONS.get(vis_type, vis_type)
    return vis_type


def validate_vis_config(vis_config: Dict[str, Any]) -> None:
    """Raise ValueError if the config is unsafe or not a valid shape."""
    _assert_safe_payload(vis_config)
    try:
        validate(instance=vis_config, schema=VIS_CONFIG_SCHEMA)
    except JsonSchemaValidationError as exc:
        raise ValueError(f"Invalid vis config: {exc.message}") from exc


def sanitize_vis_config(
    vis_config: Any, fallback: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Return a valid vis config, never raising.

    An unknown chart type is replaced by the default grid; an unsafe or
    malformed config falls back to ``fallback`` (or the default grid).
    """
    default = dict(fallback) if fallback else {"type": DEFAULT_VIS_TYPE}
    if not isinstance(vis_config, dict) or not vis_config:
        return default

    candidate = dict(vis_config)
    candidate["type"] = correct_vis_type(candidate.get("type"))
    if candidate["type"] not in VALID_VIS_TYPES:
        logger.warning(
            "Unknown vis type %r generated by LLM; using %s",
            candidate["type"],
            default.get("type", DEFAULT_VIS_TYPE),
        )
        candidate["type"] = default.get("type", DEFAULT_VIS_TYPE)

    try:
        validate_vis_config(candidate)
    except ValueError as exc:
        logger.warning("Dropping vis config generated by LLM: %s", exc)
        return default
    return candidate
