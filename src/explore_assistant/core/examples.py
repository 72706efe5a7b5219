"""Few-shot example library, keyed by explore."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Union

from pydantic import BaseModel, Field


class GenerationExample(BaseModel):
    """A question and the query object it should produce."""

    input: str
    output: Dict[str, Any] = Field(default_factory=dict)


class RefinementExample(BaseModel):
    """A sequence of user prompts and their single-question summary."""

    input: List[str] = Field(default_factory=list)
    output: str


class ExampleLibrary(BaseModel):
    explore_generation_examples: Dict[str, List[GenerationExample]] = Field(
        default_factory=dict
    )
    explore_refinement_examples: Dict[str, List[RefinementExample]] = Field(
        default_factory=dict
    )

    def generation_examples(self, explore_key: str) -> List[GenerationExample]:
        return list(self.explore_generation_examples.get(explore_key, []))

    def refinement_examples(self, explore_key: str) -> List[RefinementExample]:
        return list(self.explore_refinement_examples.get(explore_key, []))

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ExampleLibrary":
        """Load a library from a JSON file with the two example mappings."""
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.model_validate(payload)
