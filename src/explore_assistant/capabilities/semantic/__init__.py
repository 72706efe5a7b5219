"""Semantic capability exports."""

from .base import SchemaSource
from .models import (
    AvailableExplore,
    ExploreDescription,
    ExploreRef,
    Field,
    LookmlExplore,
    LookmlModel,
    SemanticModel,
    make_explore_key,
)

__all__ = [
    "SchemaSource",
    "AvailableExplore",
    "ExploreDescription",
    "ExploreRef",
    "Field",
    "LookmlExplore",
    "LookmlModel",
    "SemanticModel",
    "make_explore_key",
]
