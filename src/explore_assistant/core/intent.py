"""Intent classification result."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class Intent(str, Enum):
    """Purpose of a user's message."""

    SUMMARY = "summary"
    DASHBOARD = "dashboard"
    SCHEDULE = "schedule"
    REFINE = "refine"
    EXPLORE = "explore"


class DashboardAction(str, Enum):
    CREATE = "create"
    ADD = "add"


def _clean_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class IntentMeta(BaseModel):
    title: Optional[str] = None
    action: Optional[DashboardAction] = None
    email: Optional[str] = None
    frequency: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "IntentMeta":
        if not isinstance(payload, dict):
            return cls()
        action = _clean_text(payload.get("action"))
        frequency = _clean_text(payload.get("frequency"))
        return cls(
            title=_clean_text(payload.get("title")),
            action=DashboardAction(action.lower())
            if action and action.lower() in {a.value for a in DashboardAction}
            else None,
            email=_clean_text(payload.get("email")),
            frequency=frequency.lower() if frequency else None,
        )


class IntentResult(BaseModel):
    """Classified intent of one user turn; never persisted."""

    intent: Intent = Intent.EXPLORE
    meta: IntentMeta = Field(default_factory=IntentMeta)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "IntentResult":
        """Build from parsed model output; unknown intents default to explore."""
        raw_intent = payload.get("intent") if isinstance(payload, dict) else None
        intent = Intent.EXPLORE
        if isinstance(raw_intent, str):
            try:
                intent = Intent(raw_intent.strip().lower())
            except ValueError:
                intent = Intent.EXPLORE
        meta = payload.get("meta") if isinstance(payload, dict) else None
        return cls(intent=intent, meta=IntentMeta.from_payload(meta))
