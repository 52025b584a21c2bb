"""
Shared-data ("blackboard") document of a story.

For each resource category the blackboard maps a resource identifier to the
file(s) backing it, relative to the story's ``blackboard/`` folder::

    {
        "backgrounds": {"forest": "backgrounds/forest.png"},
        "characters": {"ari": ["characters/ari/idle.png", "characters/ari/smile.png"]},
        "variables": {...}
    }

Top-level keys other than the four categories belong to the runtime and are
ignored here.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storypack.resources.bundle import CATEGORIES, ResourceBundle, ResourceCategory

LOGGER = logging.getLogger(__name__)

ResourceKey = Tuple[ResourceCategory, str]


def _normalise_paths(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if isinstance(item, str) and item.strip()]
    raise ValueError(f"expected a path or list of paths, got {type(value).__name__}")


class BlackboardData(BaseModel):
    backgrounds: Dict[str, List[str]] = Field(default_factory=dict)
    items: Dict[str, List[str]] = Field(default_factory=dict)
    characters: Dict[str, List[str]] = Field(default_factory=dict)
    sounds: Dict[str, List[str]] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")

    @field_validator("backgrounds", "items", "characters", "sounds", mode="before")
    @classmethod
    def _coerce_entries(cls, value: Any) -> Dict[str, List[str]]:
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ValueError("resource entries must be an object keyed by identifier")
        return {str(key): _normalise_paths(paths) for key, paths in value.items()}

    def entries(self, category: ResourceCategory) -> Dict[str, List[str]]:
        return getattr(self, category.value)

    def get_resources(self, bundle: ResourceBundle) -> Dict[ResourceKey, List[str]]:
        """Map every identifier of ``bundle`` to its backing relative paths.

        Identifiers without a blackboard entry are left out; see :meth:`missing`.
        """
        resolved: Dict[ResourceKey, List[str]] = {}
        for category in CATEGORIES:
            entries = self.entries(category)
            for resource_id in bundle[category]:
                paths = entries.get(resource_id)
                if paths is None:
                    LOGGER.warning(
                        "No blackboard entry for %s '%s'", category.value, resource_id
                    )
                    continue
                resolved[(category, resource_id)] = list(paths)
        return resolved

    def missing(self, bundle: ResourceBundle) -> ResourceBundle:
        result = ResourceBundle()
        for category in CATEGORIES:
            entries = self.entries(category)
            result.add_all(
                category, (rid for rid in bundle[category] if rid not in entries)
            )
        return result


__all__ = ["BlackboardData", "ResourceKey"]
