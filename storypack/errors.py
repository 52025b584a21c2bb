from __future__ import annotations

from pathlib import Path
from typing import Optional


class StoryPackError(RuntimeError):
    """Base class for every failure surfaced by the packaging pipeline."""


class DocumentError(StoryPackError):
    """Raised when a JSON document cannot be read or does not match its model."""

    def __init__(self, message: str, *, path: Optional[Path] = None) -> None:
        super().__init__(message)
        self.path = Path(path) if path is not None else None


class MissingDocumentError(DocumentError):
    """Raised when a required document is absent."""


class FlowDocumentError(DocumentError):
    """Raised when a recognised command carries an invalid payload."""

    def __init__(
        self, message: str, *, kind: str, path: Optional[Path] = None
    ) -> None:
        super().__init__(message, path=path)
        self.kind = kind


class ArchiveError(StoryPackError):
    """Raised when an archive cannot be written or extracted."""

    def __init__(self, message: str, *, archive: Optional[Path] = None) -> None:
        super().__init__(message)
        self.archive = Path(archive) if archive is not None else None


class MissingArchiveError(ArchiveError):
    """Raised when a referenced archive is not on disk."""


class ExportError(StoryPackError):
    """Raised when a chapter or story export step fails."""

    def __init__(self, message: str, *, chapter_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.chapter_id = chapter_id


__all__ = [
    "ArchiveError",
    "DocumentError",
    "ExportError",
    "FlowDocumentError",
    "MissingArchiveError",
    "MissingDocumentError",
    "StoryPackError",
]
