from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from storypack.config.settings import StoryPackSettings, get_settings
from storypack.errors import ArchiveError, MissingArchiveError
from storypack.models.story import StoryHeader, check_path_segment
from storypack.storage.archiver import decompress_async
from storypack.storage.codec import read_model_async

LOGGER = logging.getLogger(__name__)


class StoryImporter:
    """Unpacks exported story and chapter archives."""

    def __init__(self, settings: Optional[StoryPackSettings] = None) -> None:
        self.settings = settings or get_settings()

    async def read_header(self, header_path: str | Path) -> StoryHeader:
        return await read_model_async(header_path, StoryHeader)

    async def import_story(
        self, header_path: str | Path, destination_root: str | Path
    ) -> Path:
        """Unpack the story archive named by the header into ``destination_root/<story id>``.

        The archive is looked up next to the header. Existing files at the
        destination are overwritten.
        """
        header_path = Path(header_path)
        header = await self.read_header(header_path)
        story_id = check_path_segment(header.story, path=header_path)

        archive = header_path.parent / f"{story_id}{self.settings.archive_suffix}"
        if not archive.is_file():
            raise MissingArchiveError(
                f"story archive not found next to header: {archive}", archive=archive
            )

        destination = Path(destination_root) / story_id
        try:
            destination.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ArchiveError(
                f"cannot create import destination {destination}: {exc}", archive=archive
            ) from exc
        files = await decompress_async(
            archive,
            destination,
            True,
            buffer_size=self.settings.copy_buffer_size,
        )
        LOGGER.info(
            "Imported story %s (%d chapter(s) listed, %d file(s)) into %s",
            story_id,
            len(header.chapters),
            len(files),
            destination,
        )
        return destination

    async def restore_chapter(
        self, archive_path: str | Path, target_folder: str | Path
    ) -> Path:
        target = Path(target_folder)
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ArchiveError(
                f"cannot create restore target {target}: {exc}", archive=Path(archive_path)
            ) from exc
        files = await decompress_async(
            archive_path, target, True, buffer_size=self.settings.copy_buffer_size
        )
        LOGGER.info("Restored %s into %s (%d file(s))", archive_path, target, len(files))
        return target


async def import_story(
    header_path: str | Path,
    destination_root: str | Path,
    *,
    settings: Optional[StoryPackSettings] = None,
) -> Path:
    return await StoryImporter(settings).import_story(header_path, destination_root)


async def restore_chapter(
    archive_path: str | Path,
    target_folder: str | Path,
    *,
    settings: Optional[StoryPackSettings] = None,
) -> Path:
    return await StoryImporter(settings).restore_chapter(archive_path, target_folder)


def import_story_sync(
    header_path: str | Path,
    destination_root: str | Path,
    *,
    settings: Optional[StoryPackSettings] = None,
) -> Path:
    return asyncio.run(import_story(header_path, destination_root, settings=settings))


def restore_chapter_sync(
    archive_path: str | Path,
    target_folder: str | Path,
    *,
    settings: Optional[StoryPackSettings] = None,
) -> Path:
    return asyncio.run(restore_chapter(archive_path, target_folder, settings=settings))


__all__ = [
    "StoryImporter",
    "import_story",
    "import_story_sync",
    "restore_chapter",
    "restore_chapter_sync",
]
