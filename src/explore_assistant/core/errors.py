"""Error taxonomy for the explore assistant.

Precondition and upstream errors halt the operation that depends on them and
are turned into a chat message by the turn-level handler. Malformed model
output and validation rejections never raise; they degrade locally.
"""

from __future__ import annotations

from typing import Optional


class ExploreAssistantError(Exception):
    """Base class for all assistant errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class PreconditionError(ExploreAssistantError):
    """A hard precondition (schema, credential) is not satisfied."""


class MissingCredentialError(PreconditionError):
    """No LLM API credential is configured."""


class UpstreamServiceError(ExploreAssistantError):
    """An LLM provider or BI platform call returned a non-success result.

    Attributes:
        status: HTTP status code, if the failure came from an HTTP response
        service: Name of the failing collaborator ("gemini", "looker", ...)
    """

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        service: str = "upstream",
    ) -> None:
        super().__init__(message)
        self.status = status
        self.service = service


class TurnInProgressError(ExploreAssistantError):
    """A second turn was submitted while one is still in flight."""
