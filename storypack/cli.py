from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer

from storypack.config.settings import get_settings
from storypack.errors import StoryPackError
from storypack.logging_config import init_logging
from storypack.models.story import Story
from storypack.pipeline.export import export_resources_sync
from storypack.pipeline.importer import import_story_sync, restore_chapter_sync

app = typer.Typer(add_completion=False, help="Package stories into chapter archives and back.")
logger = logging.getLogger(__name__)


@app.callback()
def _setup(
    log_level: Optional[str] = typer.Option(None, help="Log level (default from settings)."),
    log_dir: Optional[Path] = typer.Option(None, help="Directory for storypack.log."),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON log lines."),
) -> None:
    init_logging(
        log_dir,
        level=log_level or get_settings().log_level,
        json_format=json_logs,
    )


def _fail(exc: StoryPackError) -> NoReturn:
    logger.error("%s", exc)
    typer.echo(f"error: {exc}", err=True)
    raise typer.Exit(code=1)


@app.command("export")
def export_cmd(
    story_root: Path = typer.Argument(..., help="Story folder containing index.json."),
    as_json: bool = typer.Option(False, "--json", help="Print the full export report."),
) -> None:
    """Export a story into per-chapter archives, a story archive and a header."""
    try:
        story = Story.load(story_root)
        report = export_resources_sync(story)
    except StoryPackError as exc:
        _fail(exc)
    if as_json:
        typer.echo(json.dumps(report.as_dict(), indent=2))
        return
    for entry in report.chapters:
        if entry.skipped:
            typer.echo(f"{entry.chapter_id}: skipped (no flow document)")
        else:
            count = sum(len(ids) for ids in entry.delta.values())
            typer.echo(f"{entry.chapter_id}: {count} new resource(s) -> {entry.archive_path}")
    typer.echo(f"story: {report.story_archive}")
    typer.echo(f"header: {report.header_path}")


@app.command("import")
def import_cmd(
    header: Path = typer.Argument(..., help="Path to the exported header (content.elp)."),
    destination: Path = typer.Argument(..., help="Projects root to unpack the story into."),
) -> None:
    """Unpack an exported story next to its header into DESTINATION/<story id>."""
    try:
        project_path = import_story_sync(header, destination)
    except StoryPackError as exc:
        _fail(exc)
    typer.echo(str(project_path))


@app.command("restore")
def restore_cmd(
    archive: Path = typer.Argument(..., help="Chapter archive to unpack."),
    target: Path = typer.Argument(..., help="Folder to unpack into (created if absent)."),
) -> None:
    """Unpack a single chapter archive into TARGET."""
    try:
        restored = restore_chapter_sync(archive, target)
    except StoryPackError as exc:
        _fail(exc)
    typer.echo(str(restored))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
