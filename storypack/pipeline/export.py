"""
Story export pipeline.

An export run walks the story's chapters in declared order and ships every
referenced resource exactly once, in the first chapter that references it:

1. each chapter's flow document is parsed and its resource bundle extracted
   (chapters concurrently, no shared state);
2. the bundles are folded into the run's accumulator strictly in chapter
   order, yielding each chapter's delta;
3. the files backing each delta are staged and zipped to
   ``Export/<chapter id>.zip`` (chapters concurrently).

The story archive (blackboard, index, cover and raw chapter folders) and the
``content.elp`` header are written last. The first failure aborts the run.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Dict, Iterable, List, Optional, Tuple, TypeVar

from storypack.config.settings import StoryPackSettings, get_settings
from storypack.errors import ExportError, StoryPackError
from storypack.logging_config import reset_run_id, set_run_id
from storypack.models.blackboard import BlackboardData
from storypack.models.flow import FlowData
from storypack.models.story import Story, StoryChapter, StoryHeader, check_path_segment
from storypack.resources.bundle import ResourceBundle
from storypack.resources.extractor import ExtractionStats, extract_with_stats
from storypack.resources.resolvers import ResolverRegistry
from storypack.storage.archiver import archive_path_for, compress_async
from storypack.storage.codec import read_model_async, write_model_async
from storypack.storage.copier import copy_files, mirror_tree, remove_tree

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class ChapterExport:
    chapter_id: str
    archive_path: Optional[Path] = None
    skipped: bool = False
    delta: Dict[str, List[str]] = field(default_factory=dict)
    files: List[str] = field(default_factory=list)
    missing: Dict[str, List[str]] = field(default_factory=dict)
    skipped_kinds: Dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "chapter": self.chapter_id,
            "archive": self.archive_path.as_posix() if self.archive_path else None,
            "skipped": self.skipped,
            "delta": self.delta,
            "files": self.files,
            "missing": {k: v for k, v in self.missing.items() if v},
            "skipped_kinds": self.skipped_kinds,
        }


@dataclass
class ExportReport:
    story_id: str
    export_dir: Path
    header_path: Path
    story_archive: Path
    chapters: List[ChapterExport] = field(default_factory=list)
    shipped: Dict[str, List[str]] = field(default_factory=dict)

    def chapter(self, chapter_id: str) -> Optional[ChapterExport]:
        for entry in self.chapters:
            if entry.chapter_id == chapter_id:
                return entry
        return None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "story": self.story_id,
            "export_dir": self.export_dir.as_posix(),
            "header": self.header_path.as_posix(),
            "story_archive": self.story_archive.as_posix(),
            "chapters": [entry.as_dict() for entry in self.chapters],
            "shipped": self.shipped,
        }


@dataclass
class _PreparedChapter:
    chapter: StoryChapter
    bundle: Optional[ResourceBundle] = None
    stats: Optional[ExtractionStats] = None
    delta: Optional[ResourceBundle] = None


async def _gather_or_cancel(aws: Iterable[Awaitable[T]]) -> List[T]:
    """``asyncio.gather`` that cancels the remaining tasks on first failure."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class StoryExporter:
    def __init__(
        self,
        settings: Optional[StoryPackSettings] = None,
        registry: Optional[ResolverRegistry] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.registry = registry

    def export_dir(self, story: Story) -> Path:
        return Path(story.path) / self.settings.export_dir

    def check_ids(self, story: Story) -> None:
        """Reject ids that cannot be used as staging folder and archive names."""
        index_path = Path(story.path) / self.settings.index_file
        check_path_segment(story.id, path=index_path)
        for chapter in story.chapters:
            check_path_segment(chapter.id, path=index_path)
            if chapter.id == story.id:
                raise ExportError(
                    f"chapter {chapter.id} would share its archive with the story",
                    chapter_id=chapter.id,
                )

    async def export_resources(self, story: Story) -> ExportReport:
        """Export every chapter, then the story archive and header."""
        token = set_run_id(uuid.uuid4().hex[:12])
        try:
            LOGGER.info(
                "Exporting story %s (%d chapters) from %s",
                story.id,
                len(story.chapters),
                story.path,
            )
            self.check_ids(story)
            export_dir = self.export_dir(story)
            export_dir.mkdir(parents=True, exist_ok=True)

            accumulator = ResourceBundle()
            chapters = await self.export_chapters(story, accumulator)
            story_archive, header_path = await self.export_story(story)

            report = ExportReport(
                story_id=story.id,
                export_dir=export_dir,
                header_path=header_path,
                story_archive=story_archive,
                chapters=chapters,
                shipped=accumulator.as_dict(),
            )
            LOGGER.info(
                "Exported story %s: %d chapter archive(s), %d resource(s) shipped",
                story.id,
                sum(1 for entry in chapters if not entry.skipped),
                accumulator.total(),
            )
            return report
        finally:
            reset_run_id(token)

    # ------------------------------------------------------------------
    # Chapters
    # ------------------------------------------------------------------
    async def export_chapters(
        self, story: Story, accumulator: ResourceBundle
    ) -> List[ChapterExport]:
        self.check_ids(story)
        prepared = await _gather_or_cancel(
            self._prepare_chapter(chapter) for chapter in story.chapters
        )

        blackboard: Optional[BlackboardData] = None
        if any(entry.bundle is not None for entry in prepared):
            blackboard = await read_model_async(
                Path(story.path) / self.settings.blackboard_file, BlackboardData
            )

        # Deltas are only meaningful relative to everything folded before
        # them, so this step stays sequential and in declared order.
        for entry in prepared:
            if entry.bundle is not None:
                entry.delta = accumulator.diff_and_merge(entry.bundle)

        limit = asyncio.Semaphore(self.settings.max_concurrency)
        return await _gather_or_cancel(
            self._package_chapter(story, entry, blackboard, limit) for entry in prepared
        )

    async def _prepare_chapter(self, chapter: StoryChapter) -> _PreparedChapter:
        flow_path = Path(chapter.path) / self.settings.flow_file
        if not flow_path.is_file():
            LOGGER.info("Chapter %s has no %s; skipping", chapter.id, flow_path.name)
            return _PreparedChapter(chapter=chapter)

        flow = await read_model_async(flow_path, FlowData)
        bundle, stats = extract_with_stats(flow, self.registry, source=flow_path)
        LOGGER.debug(
            "Chapter %s references %d resource(s) across %d command(s)",
            chapter.id,
            bundle.total(),
            stats.resolved + stats.skipped,
        )
        return _PreparedChapter(chapter=chapter, bundle=bundle, stats=stats)

    async def _package_chapter(
        self,
        story: Story,
        entry: _PreparedChapter,
        blackboard: Optional[BlackboardData],
        limit: asyncio.Semaphore,
    ) -> ChapterExport:
        chapter = entry.chapter
        if entry.delta is None or blackboard is None:
            return ChapterExport(chapter_id=chapter.id, skipped=True)

        delta = entry.delta
        resources = blackboard.get_resources(delta)
        relpaths = [path for paths in resources.values() for path in paths]
        staging = self.export_dir(story) / chapter.id

        async with limit:
            try:
                remove_tree(staging)
                staging.mkdir(parents=True, exist_ok=True)
                await copy_files(
                    Path(story.path) / self.settings.blackboard_dir, staging, relpaths
                )
                archive = await compress_async(
                    staging,
                    archive_path_for(staging, chapter.id, self.settings.archive_suffix),
                    self.settings.include_root_folder,
                    buffer_size=self.settings.copy_buffer_size,
                )
            except StoryPackError:
                raise
            except (OSError, ValueError) as exc:
                raise ExportError(
                    f"chapter {chapter.id} export failed: {exc}", chapter_id=chapter.id
                ) from exc
            remove_tree(staging)

        LOGGER.info(
            "Chapter %s: %d new resource(s), %d file(s) -> %s",
            chapter.id,
            delta.total(),
            len(relpaths),
            archive.name,
        )
        return ChapterExport(
            chapter_id=chapter.id,
            archive_path=archive,
            delta=delta.as_dict(),
            files=sorted(set(relpaths)),
            missing=blackboard.missing(delta).as_dict(),
            skipped_kinds=dict(entry.stats.skipped_kinds) if entry.stats else {},
        )

    # ------------------------------------------------------------------
    # Story
    # ------------------------------------------------------------------
    async def export_story(self, story: Story) -> Tuple[Path, Path]:
        """Write ``<story id>.zip`` and the header; return both paths."""
        self.check_ids(story)
        settings = self.settings
        root = Path(story.path)
        export_dir = self.export_dir(story)
        staging = export_dir / story.id

        try:
            remove_tree(staging)
            staging.mkdir(parents=True, exist_ok=True)
            await copy_files(
                root,
                staging,
                [settings.blackboard_file, settings.index_file, settings.cover_file],
            )
            mirrored = await asyncio.to_thread(self._mirror_chapters, story, staging)
            archive = await compress_async(
                staging,
                archive_path_for(staging, story.id, settings.archive_suffix),
                settings.include_root_folder,
                buffer_size=settings.copy_buffer_size,
            )
        except StoryPackError:
            raise
        except (OSError, ValueError) as exc:
            raise ExportError(f"story {story.id} export failed: {exc}") from exc
        remove_tree(staging)

        header = StoryHeader(story=story.id, chapters=story.chapter_ids())
        header_path = await write_model_async(export_dir / settings.header_file, header)
        LOGGER.info(
            "Story %s archived with %d chapter folder(s) -> %s",
            story.id,
            mirrored,
            archive.name,
        )
        return archive, header_path

    def _mirror_chapters(self, story: Story, staging: Path) -> int:
        root = Path(story.path)
        mirrored = 0
        for chapter_id in dict.fromkeys(story.chapter_ids()):
            if chapter_id == self.settings.export_dir:
                LOGGER.warning("Chapter id %s collides with the export folder", chapter_id)
                continue
            source = root / chapter_id
            if not source.is_dir():
                continue
            mirror_tree(source, staging / chapter_id)
            mirrored += 1
        return mirrored


async def export_resources(
    story: Story,
    *,
    settings: Optional[StoryPackSettings] = None,
    registry: Optional[ResolverRegistry] = None,
) -> ExportReport:
    return await StoryExporter(settings, registry).export_resources(story)


def export_resources_sync(
    story: Story,
    *,
    settings: Optional[StoryPackSettings] = None,
    registry: Optional[ResolverRegistry] = None,
) -> ExportReport:
    return asyncio.run(export_resources(story, settings=settings, registry=registry))


__all__ = [
    "ChapterExport",
    "ExportReport",
    "StoryExporter",
    "export_resources",
    "export_resources_sync",
]
