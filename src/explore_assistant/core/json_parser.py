"""Structured-output extraction from raw LLM text."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional

_FENCED_BLOCK_RE = re.compile(r"```[A-Za-z0-9_-]*[ \t]*\n?(.*?)```", re.DOTALL)


def _load_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(text)
    except (ValueError, RecursionError):
        return None
    return parsed if isinstance(parsed, dict) else None


def parse_json(text: Any) -> Dict[str, Any]:
    """Extract a JSON object from model output.

    Tries the whole text first, then the first fenced code block. Anything
    else (non-string input, invalid JSON, arrays, scalars) yields ``{}``;
    partial or guessed structures are never returned.
    """
    if not isinstance(text, str):
        return {}

    stripped = text.strip()
    parsed = _load_object(stripped)
    if parsed is not None:
        return parsed

    match = _FENCED_BLOCK_RE.search(stripped)
    if match:
        parsed = _load_object(match.group(1).strip())
        if parsed is not None:
            return parsed

    return {}
