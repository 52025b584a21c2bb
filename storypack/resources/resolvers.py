"""
Command resolvers and their registry.

Each resolver is a pydantic model of the payload fields it cares about and
adds the identifiers it references to a :class:`ResourceBundle`. Resolvers
register themselves under one or more command kind tags; a kind without a
resolver simply contributes nothing.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

from storypack.resources.bundle import ResourceBundle, ResourceCategory

LOGGER = logging.getLogger(__name__)


class CommandResolver(BaseModel):
    """Base class for payload models that contribute resource references."""

    model_config = ConfigDict(extra="ignore", frozen=True, coerce_numbers_to_str=True)

    def resolve(self, bundle: ResourceBundle) -> None:
        raise NotImplementedError


class ResolverRegistry:
    """Kind tag -> resolver class table."""

    def __init__(
        self, resolvers: Optional[Mapping[str, Type[CommandResolver]]] = None
    ) -> None:
        self._items: Dict[str, Type[CommandResolver]] = {}
        self._lock = threading.RLock()
        for kind, resolver in (resolvers or {}).items():
            self.register(kind, resolver)

    def register(self, kind: str, resolver: Type[CommandResolver]) -> None:
        kind = (kind or "").strip()
        if not kind:
            raise ValueError("resolver kind is required")
        if not (isinstance(resolver, type) and issubclass(resolver, CommandResolver)):
            raise TypeError(f"{resolver!r} is not a CommandResolver subclass")
        with self._lock:
            previous = self._items.get(kind)
            if previous is not None and previous is not resolver:
                LOGGER.debug(
                    "Replacing resolver for %s (%s -> %s)",
                    kind,
                    previous.__name__,
                    resolver.__name__,
                )
            self._items[kind] = resolver

    def unregister(self, kind: str) -> None:
        with self._lock:
            self._items.pop(kind, None)

    def get(self, kind: Optional[str]) -> Optional[Type[CommandResolver]]:
        if not kind:
            return None
        with self._lock:
            return self._items.get(kind)

    def resolver_for(self, kind: Optional[str], payload: Dict[str, Any]) -> Optional[CommandResolver]:
        """Build the resolver for ``payload``; ``None`` when ``kind`` is unknown.

        Raises :class:`pydantic.ValidationError` when the payload does not fit
        the resolver's fields.
        """
        resolver_cls = self.get(kind)
        if resolver_cls is None:
            return None
        return resolver_cls.model_validate(payload)

    def kinds(self) -> List[str]:
        with self._lock:
            return sorted(self._items)

    def copy(self) -> "ResolverRegistry":
        with self._lock:
            return ResolverRegistry(dict(self._items))

    def __contains__(self, kind: object) -> bool:
        with self._lock:
            return kind in self._items

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


_DEFAULT_REGISTRY = ResolverRegistry()


def default_registry() -> ResolverRegistry:
    return _DEFAULT_REGISTRY


def register_resolver(*kinds: str, registry: Optional[ResolverRegistry] = None):
    """Class decorator registering a resolver under ``kinds``."""

    if not kinds:
        raise ValueError("at least one kind is required")
    target = registry if registry is not None else _DEFAULT_REGISTRY

    def _decorator(cls: Type[CommandResolver]) -> Type[CommandResolver]:
        for kind in kinds:
            target.register(kind, cls)
        return cls

    return _decorator


def _ids(values: Iterable[Optional[str]]) -> List[str]:
    return [value for value in values if value]


# ----------------------------------------------------------------------
# Built-in resolvers
# ----------------------------------------------------------------------
@register_resolver("ShowBackgroundCommand")
class ShowBackgroundResolver(CommandResolver):
    background: Optional[str] = None

    def resolve(self, bundle: ResourceBundle) -> None:
        bundle.add(ResourceCategory.BACKGROUNDS, self.background)


@register_resolver("ShowItemCommand", "GiveItemCommand", "RemoveItemCommand")
class ItemResolver(CommandResolver):
    item: Optional[str] = None

    def resolve(self, bundle: ResourceBundle) -> None:
        bundle.add(ResourceCategory.ITEMS, self.item)


@register_resolver("ShowCharacterCommand", "HideCharacterCommand")
class CharacterResolver(CommandResolver):
    character: Optional[str] = None

    def resolve(self, bundle: ResourceBundle) -> None:
        bundle.add(ResourceCategory.CHARACTERS, self.character)


@register_resolver("DialogueCommand")
class DialogueResolver(CommandResolver):
    # Narration lines carry no speaker.
    speaker: Optional[str] = None
    characters: List[str] = Field(default_factory=list)

    def resolve(self, bundle: ResourceBundle) -> None:
        bundle.add(ResourceCategory.CHARACTERS, self.speaker)
        bundle.add_all(ResourceCategory.CHARACTERS, _ids(self.characters))


@register_resolver("PlaySoundCommand", "PlayMusicCommand")
class SoundResolver(CommandResolver):
    sound: Optional[str] = None

    def resolve(self, bundle: ResourceBundle) -> None:
        bundle.add(ResourceCategory.SOUNDS, self.sound)


class ChoiceOption(BaseModel):
    text: Optional[str] = None
    sound: Optional[str] = None
    item: Optional[str] = None

    model_config = ConfigDict(extra="ignore", frozen=True, coerce_numbers_to_str=True)


@register_resolver("ChoiceCommand")
class ChoiceResolver(CommandResolver):
    options: List[ChoiceOption] = Field(default_factory=list)

    def resolve(self, bundle: ResourceBundle) -> None:
        for option in self.options:
            bundle.add(ResourceCategory.SOUNDS, option.sound)
            bundle.add(ResourceCategory.ITEMS, option.item)


@register_resolver("SceneCommand")
class SceneResolver(CommandResolver):
    background: Optional[str] = None
    characters: List[str] = Field(default_factory=list)
    music: Optional[str] = None
    ambience: Optional[str] = None

    def resolve(self, bundle: ResourceBundle) -> None:
        bundle.add(ResourceCategory.BACKGROUNDS, self.background)
        bundle.add_all(ResourceCategory.CHARACTERS, _ids(self.characters))
        bundle.add_all(ResourceCategory.SOUNDS, _ids((self.music, self.ambience)))


__all__ = [
    "ChoiceOption",
    "ChoiceResolver",
    "CharacterResolver",
    "CommandResolver",
    "DialogueResolver",
    "ItemResolver",
    "ResolverRegistry",
    "SceneResolver",
    "ShowBackgroundResolver",
    "SoundResolver",
    "default_registry",
    "register_resolver",
]
