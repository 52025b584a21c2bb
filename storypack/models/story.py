from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from storypack.config.settings import StoryPackSettings, get_settings
from storypack.errors import DocumentError, MissingDocumentError


def check_path_segment(value: str, *, path: Optional[Path] = None) -> str:
    """Return ``value`` if it names a single folder, else raise ``DocumentError``.

    Story and chapter ids become folder and archive names, so they may not be
    empty, ``.`` or ``..``, or contain a path separator.
    """
    if not value or value in {".", ".."} or "/" in value or "\\" in value:
        raise DocumentError(f"id is not a valid folder name: {value!r}", path=path)
    return value


class StoryChapter(BaseModel):
    id: str
    path: Path

    model_config = ConfigDict(extra="ignore", frozen=True)


class Story(BaseModel):
    """Story metadata supplied by the project model (read-only)."""

    id: str
    path: Path
    chapters: List[StoryChapter] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore", frozen=True)

    def chapter_ids(self) -> List[str]:
        return [chapter.id for chapter in self.chapters]

    @classmethod
    def load(
        cls, root: str | Path, settings: Optional[StoryPackSettings] = None
    ) -> "Story":
        """Build a story from the index document found under ``root``.

        Chapters declared without a path live in ``<root>/<chapter id>``;
        relative chapter paths are resolved against ``root``.
        """
        settings = settings or get_settings()
        root = Path(root).expanduser().resolve()
        index_path = root / settings.index_file
        if not index_path.is_file():
            raise MissingDocumentError(
                f"story index not found: {index_path}", path=index_path
            )
        try:
            data: Dict[str, Any] = json.loads(index_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise DocumentError(
                f"story index unreadable: {index_path} ({exc})", path=index_path
            ) from exc
        if not isinstance(data, dict):
            raise DocumentError(
                f"story index must be a JSON object: {index_path}", path=index_path
            )

        chapters: List[Dict[str, Any]] = []
        for entry in data.get("chapters") or []:
            if isinstance(entry, str):
                entry = {"id": entry}
            if not isinstance(entry, dict) or not entry.get("id"):
                continue
            chapter_path = Path(entry.get("path") or entry["id"])
            if not chapter_path.is_absolute():
                chapter_path = root / chapter_path
            chapters.append({"id": str(entry["id"]), "path": chapter_path})

        try:
            return cls(id=str(data.get("id") or root.name), path=root, chapters=chapters)
        except ValidationError as exc:
            raise DocumentError(
                f"story index invalid: {index_path} ({exc})", path=index_path
            ) from exc


class StoryHeader(BaseModel):
    """Top-level header written next to the exported archives."""

    story: str
    chapters: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


__all__ = ["Story", "StoryChapter", "StoryHeader", "check_path_segment"]
