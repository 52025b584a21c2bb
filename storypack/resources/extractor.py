from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

from pydantic import ValidationError

from storypack.errors import FlowDocumentError
from storypack.models.flow import FlowData, command_kind
from storypack.resources.bundle import ResourceBundle
from storypack.resources.resolvers import ResolverRegistry, default_registry

LOGGER = logging.getLogger(__name__)


@dataclass
class ExtractionStats:
    resolved: int = 0
    skipped: int = 0
    skipped_kinds: Dict[str, int] = field(default_factory=dict)

    def note_skipped(self, kind: Optional[str]) -> None:
        self.skipped += 1
        label = kind or "<untyped>"
        self.skipped_kinds[label] = self.skipped_kinds.get(label, 0) + 1


def extract_with_stats(
    flow: FlowData,
    registry: Optional[ResolverRegistry] = None,
    *,
    source: Optional[Path] = None,
) -> Tuple[ResourceBundle, ExtractionStats]:
    """Collect every resource referenced by ``flow`` into a fresh bundle.

    Commands whose kind has no registered resolver are skipped. A recognised
    command whose payload does not validate raises :class:`FlowDocumentError`.
    """
    registry = registry if registry is not None else default_registry()
    bundle = ResourceBundle()
    stats = ExtractionStats()

    for payload in flow.iter_commands():
        kind = command_kind(payload)
        try:
            resolver = registry.resolver_for(kind, payload)
        except ValidationError as exc:
            raise FlowDocumentError(
                f"invalid {kind} payload: {exc.errors(include_url=False)}",
                kind=kind or "",
                path=source,
            ) from exc
        if resolver is None:
            stats.note_skipped(kind)
            continue
        resolver.resolve(bundle)
        stats.resolved += 1

    if stats.skipped:
        LOGGER.debug(
            "Skipped %d command(s) without resolver: %s",
            stats.skipped,
            ", ".join(sorted(stats.skipped_kinds)),
        )
    return bundle, stats


def extract_references(
    flow: FlowData, registry: Optional[ResolverRegistry] = None
) -> ResourceBundle:
    bundle, _ = extract_with_stats(flow, registry)
    return bundle


__all__ = ["ExtractionStats", "extract_references", "extract_with_stats"]
