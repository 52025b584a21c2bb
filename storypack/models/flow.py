"""
Chapter flow document.

``flow.json`` holds a list of blocks, each with its own list of command
payloads. Payloads stay plain dictionaries here; the resolver registry decides
which kinds are meaningful for resource extraction.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field

KIND_KEYS: tuple[str, ...] = ("type", "Type", "kind")


def command_kind(payload: Any) -> Optional[str]:
    """Return the bare kind tag of ``payload`` or ``None`` when it has none.

    Authoring tools may write qualified names such as
    ``"Story.Commands.ShowBackgroundCommand, Story"``; only the trailing type
    name is kept.
    """
    if not isinstance(payload, dict):
        return None
    for key in KIND_KEYS:
        raw = payload.get(key)
        if isinstance(raw, str) and raw.strip():
            name = raw.split(",", 1)[0].strip()
            return name.rsplit(".", 1)[-1] or None
    return None


class CommandBlock(BaseModel):
    id: Optional[str] = None
    commands: List[Any] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class FlowData(BaseModel):
    """Parsed ``flow.json`` of one chapter."""

    commands: List[CommandBlock] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    def iter_commands(self) -> Iterator[Dict[str, Any]]:
        for block in self.commands:
            for payload in block.commands:
                if isinstance(payload, dict):
                    yield payload

    def command_count(self) -> int:
        return sum(1 for _ in self.iter_commands())


__all__ = ["CommandBlock", "FlowData", "KIND_KEYS", "command_kind"]
