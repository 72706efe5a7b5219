"""Schema source interface for semantic model discovery."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from .models import ExploreDescription, LookmlModel


class SchemaSource(ABC):
    """Source of models, explores and explore field listings."""

    @abstractmethod
    async def list_models(self) -> List[LookmlModel]:
        """Return every model with its explores (hidden ones included)."""
        pass

    @abstractmethod
    async def describe_explore(
        self, model_name: str, explore_id: str
    ) -> ExploreDescription:
        """Return the raw dimension/measure listing for one explore."""
        pass
