"""Semantic model types discovered from the BI platform."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field as PydanticField


def make_explore_key(model_name: str, explore_id: str) -> str:
    return f"{model_name}:{explore_id}"


class Field(BaseModel):
    """One dimension or measure of an explore ("view.field" naming)."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: str = ""
    label: str = ""
    description: str = ""
    tags: List[str] = PydanticField(default_factory=list)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Field":
        """Build a field from a raw API payload, tolerating nulls."""
        return cls(
            name=payload.get("name") or "",
            type=payload.get("type") or "",
            label=payload.get("label") or "",
            description=payload.get("description") or "",
            tags=list(payload.get("tags") or []),
        )


class ExploreRef(BaseModel):
    """Identity of an explore: the host supplies it, never the model."""

    model_config = ConfigDict(protected_namespaces=())

    model_name: str
    explore_id: str

    @property
    def explore_key(self) -> str:
        return make_explore_key(self.model_name, self.explore_id)

    @classmethod
    def from_key(cls, explore_key: str) -> "ExploreRef":
        model_name, _, explore_id = explore_key.partition(":")
        if not model_name or not explore_id:
            raise ValueError(f"Invalid explore key: {explore_key!r}")
        return cls(model_name=model_name, explore_id=explore_id)


class AvailableExplore(ExploreRef):
    label: str = ""


class SemanticModel(BaseModel):
    """Dimensions and measures available in one explore.

    Immutable once loaded; a reload replaces the whole object.
    """

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    model_name: str
    explore_id: str
    dimensions: List[Field] = PydanticField(default_factory=list)
    measures: List[Field] = PydanticField(default_factory=list)

    @property
    def explore_key(self) -> str:
        return make_explore_key(self.model_name, self.explore_id)

    @property
    def explore(self) -> ExploreRef:
        return ExploreRef(model_name=self.model_name, explore_id=self.explore_id)

    @property
    def field_names(self) -> Set[str]:
        """Lexicon of dimension and measure names."""
        return {f.name for f in self.dimensions} | {f.name for f in self.measures}

    @property
    def dimension_names(self) -> Set[str]:
        return {f.name for f in self.dimensions}

    @property
    def measure_names(self) -> Set[str]:
        return {f.name for f in self.measures}

    @property
    def is_complete(self) -> bool:
        return bool(self.dimensions) and bool(self.measures)

    def find_field(self, name: str) -> Optional[Field]:
        for field in self.dimensions:
            if field.name == name:
                return field
        for field in self.measures:
            if field.name == name:
                return field
        return None


class LookmlExplore(BaseModel):
    """Explore entry as returned by the model listing."""

    name: Optional[str] = None
    label: Optional[str] = None
    hidden: Optional[bool] = None


class LookmlModel(BaseModel):
    name: str = ""
    explores: List[LookmlExplore] = PydanticField(default_factory=list)


class ExploreDescription(BaseModel):
    """Raw field listing of one explore, hidden fields included."""

    dimensions: List[Dict[str, Any]] = PydanticField(default_factory=list)
    measures: List[Dict[str, Any]] = PydanticField(default_factory=list)
