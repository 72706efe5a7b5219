"""Explore discovery + per-explore semantic model cache."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, List, Optional

from ..capabilities.semantic import (
    AvailableExplore,
    ExploreDescription,
    Field,
    SchemaSource,
    SemanticModel,
    make_explore_key,
)
from ..core.errors import UpstreamServiceError

logger = logging.getLogger(__name__)

_INACCESSIBLE_STATUSES = {403, 404}


class SchemaDirectory:
    """Discovers explores and holds one SemanticModel per explore key.

    Loading fails soft per explore: an explore whose fields cannot be fetched
    is logged and left out, the others keep loading.
    """

    def __init__(self, schema_source: SchemaSource):
        self.schema_source = schema_source
        self._explores: List[AvailableExplore] = []
        self._models: Dict[str, SemanticModel] = {}

    @property
    def available_explores(self) -> List[AvailableExplore]:
        return list(self._explores)

    async def discover_explores(self) -> List[AvailableExplore]:
        """List every non-hidden, named explore across all models.

        A failure listing models propagates to the caller.
        """
        models = await self.schema_source.list_models()

        explores: List[AvailableExplore] = []
        for model in models:
            if not model.name:
                continue
            for explore in model.explores:
                if explore.hidden or not explore.name:
                    continue
                explores.append(
                    AvailableExplore(
                        model_name=model.name,
                        explore_id=explore.name,
                        label=explore.label or explore.name,
                    )
                )

        self._explores = explores
        logger.info("Discovered %s explores in %s models", len(explores), len(models))
        return list(explores)

    async def load_schema(
        self, model_name: str, explore_id: str, reload: bool = False
    ) -> Optional[SemanticModel]:
        """Fetch and cache the semantic model of one explore.

        Returns None when the explore cannot be described; the explore then
        stays unavailable.
        """
        explore_key = make_explore_key(model_name, explore_id)
        if not reload and explore_key in self._models:
            return self._models[explore_key]

        try:
            description = await self.schema_source.describe_explore(
                model_name, explore_id
            )
        except UpstreamServiceError as e:
            if e.status in _INACCESSIBLE_STATUSES:
                logger.warning(
                    "Explore %s is not accessible (%s): %s",
                    explore_key,
                    e.status,
                    e.message,
                )
            else:
                logger.error("Failed to load explore %s: %s", explore_key, e.message)
            return None
        except Exception as e:
            logger.error("Failed to load explore %s: %s", explore_key, e)
            return None

        semantic_model = self._build_semantic_model(model_name, explore_id, description)
        self._models[explore_key] = semantic_model
        logger.info(
            "Loaded explore %s: %s dimensions, %s measures",
            explore_key,
            len(semantic_model.dimensions),
            len(semantic_model.measures),
        )
        return semantic_model

    async def load_all(
        self, explores: Optional[Iterable[AvailableExplore]] = None
    ) -> Dict[str, SemanticModel]:
        """Load every explore concurrently; one failure never aborts the rest."""
        targets = list(explores) if explores is not None else self._explores
        await asyncio.gather(
            *(self.load_schema(e.model_name, e.explore_id) for e in targets)
        )
        return dict(self._models)

    def get(self, explore_key: str) -> Optional[SemanticModel]:
        return self._models.get(explore_key)

    def is_ready(self, explore_key: str) -> bool:
        semantic_model = self._models.get(explore_key)
        return semantic_model is not None and semantic_model.is_complete

    def _build_semantic_model(
        self, model_name: str, explore_id: str, description: ExploreDescription
    ) -> SemanticModel:
        return SemanticModel(
            model_name=model_name,
            explore_id=explore_id,
            dimensions=_visible_fields(description.dimensions),
            measures=_visible_fields(description.measures),
        )


def _visible_fields(raw_fields: Iterable[dict]) -> List[Field]:
    fields: List[Field] = []
    for payload in raw_fields:
        if not isinstance(payload, dict) or payload.get("hidden"):
            continue
        field = Field.from_api(payload)
        if field.name:
            fields.append(field)
    return fields
