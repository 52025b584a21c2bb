from __future__ import annotations

from typing import Any, Dict, Iterable

SAMPLE_BLACKBOARD: Dict[str, Any] = {
    "backgrounds": {
        "forest": "backgrounds/forest.png",
        "castle": "backgrounds/castle.png",
    },
    "items": {"key": "items/key.png", "sword": "items/sword.png"},
    "characters": {
        "ari": ["characters/ari/idle.png", "characters/ari/smile.png"],
        "ben": "characters/ben/idle.png",
    },
    "sounds": {"rain": "sounds/rain.ogg", "theme": "sounds/theme.ogg"},
    "variables": {"route": "unset"},
}


def cmd(kind: str, **fields: Any) -> Dict[str, Any]:
    return {"type": kind, **fields}


def flow(*blocks: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "commands": [
            {"id": f"block-{index}", "commands": list(block)}
            for index, block in enumerate(blocks)
        ]
    }


def payload_bytes(relpath: str) -> bytes:
    return f"payload:{relpath}".encode("utf-8")
