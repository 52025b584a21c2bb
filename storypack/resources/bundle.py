"""
Resource identifier sets grouped by category.

A :class:`ResourceBundle` plays two roles during an export run: the
accumulator owned by the exporter, which only ever grows, and the per-chapter
bundle produced by the reference extractor, which is read-only once built.
``diff_and_merge`` connects the two, one category at a time, so callers still
know which blackboard category a newly shipped identifier belongs to.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional


class ResourceCategory(str, Enum):
    BACKGROUNDS = "backgrounds"
    ITEMS = "items"
    CHARACTERS = "characters"
    SOUNDS = "sounds"


CATEGORIES: tuple[ResourceCategory, ...] = tuple(ResourceCategory)


def coerce_category(value: ResourceCategory | str) -> ResourceCategory:
    if isinstance(value, ResourceCategory):
        return value
    try:
        return ResourceCategory(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"unknown resource category '{value}'") from None


class ResourceSet:
    """Set of opaque resource identifiers for one category."""

    __slots__ = ("_ids",)

    def __init__(self, ids: Optional[Iterable[str]] = None) -> None:
        self._ids: set[str] = set()
        if ids:
            self.add_all(ids)

    def add(self, resource_id: Optional[str]) -> None:
        if not resource_id:
            return
        self._ids.add(str(resource_id))

    def add_all(self, ids: Iterable[Optional[str]]) -> None:
        for resource_id in ids:
            self.add(resource_id)

    def update(self, other: "ResourceSet") -> None:
        self._ids |= other._ids

    def difference(self, other: "ResourceSet") -> "ResourceSet":
        result = ResourceSet()
        result._ids = self._ids - other._ids
        return result

    def copy(self) -> "ResourceSet":
        result = ResourceSet()
        result._ids = set(self._ids)
        return result

    def __contains__(self, resource_id: object) -> bool:
        return resource_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._ids))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ResourceSet):
            return self._ids == other._ids
        if isinstance(other, (set, frozenset)):
            return self._ids == other
        return NotImplemented

    def __repr__(self) -> str:
        return f"ResourceSet({sorted(self._ids)!r})"


class ResourceBundle:
    """Fixed mapping of the four resource categories to their sets."""

    __slots__ = ("_sets",)

    def __init__(
        self, initial: Optional[Dict[ResourceCategory | str, Iterable[str]]] = None
    ) -> None:
        self._sets: Dict[ResourceCategory, ResourceSet] = {
            category: ResourceSet() for category in CATEGORIES
        }
        for key, ids in (initial or {}).items():
            self.add_all(key, ids)

    def __getitem__(self, category: ResourceCategory | str) -> ResourceSet:
        return self._sets[coerce_category(category)]

    @property
    def backgrounds(self) -> ResourceSet:
        return self._sets[ResourceCategory.BACKGROUNDS]

    @property
    def items(self) -> ResourceSet:
        return self._sets[ResourceCategory.ITEMS]

    @property
    def characters(self) -> ResourceSet:
        return self._sets[ResourceCategory.CHARACTERS]

    @property
    def sounds(self) -> ResourceSet:
        return self._sets[ResourceCategory.SOUNDS]

    def add(self, category: ResourceCategory | str, resource_id: Optional[str]) -> None:
        self[category].add(resource_id)

    def add_all(
        self, category: ResourceCategory | str, ids: Iterable[Optional[str]]
    ) -> None:
        self[category].add_all(ids)

    def categories(self) -> Iterator[tuple[ResourceCategory, ResourceSet]]:
        for category in CATEGORIES:
            yield category, self._sets[category]

    def is_empty(self) -> bool:
        return all(len(ids) == 0 for ids in self._sets.values())

    def total(self) -> int:
        return sum(len(ids) for ids in self._sets.values())

    def copy(self) -> "ResourceBundle":
        result = ResourceBundle()
        result._sets = {category: ids.copy() for category, ids in self._sets.items()}
        return result

    def diff_and_merge(self, incoming: "ResourceBundle") -> "ResourceBundle":
        """Return what ``incoming`` adds to this accumulator, then absorb it.

        The delta is computed per category before the union so identifiers
        already shipped never reappear. ``incoming`` is left untouched.
        """
        delta = ResourceBundle()
        for category in CATEGORIES:
            shipped = self._sets[category]
            referenced = incoming._sets[category]
            delta._sets[category] = referenced.difference(shipped)
            shipped.update(referenced)
        return delta

    def as_dict(self) -> Dict[str, List[str]]:
        return {category.value: list(ids) for category, ids in self.categories()}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResourceBundle):
            return NotImplemented
        return self._sets == other._sets

    def __repr__(self) -> str:
        return f"ResourceBundle({self.as_dict()!r})"


def diff_and_merge(
    accumulator: ResourceBundle, incoming: ResourceBundle
) -> ResourceBundle:
    return accumulator.diff_and_merge(incoming)


__all__ = [
    "CATEGORIES",
    "ResourceBundle",
    "ResourceCategory",
    "ResourceSet",
    "coerce_category",
    "diff_and_merge",
]
