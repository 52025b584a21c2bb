from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from storypack.config import settings as settings_module
from storypack.config import runtime_paths
from storypack.config.settings import StoryPackSettings
from storypack.models.story import Story, StoryChapter
from tests.helpers import SAMPLE_BLACKBOARD, cmd, flow, payload_bytes


@pytest.fixture(autouse=True)
def _isolated_runtime(tmp_path_factory, monkeypatch):
    runtime_root = tmp_path_factory.mktemp("runtime")
    monkeypatch.setenv("STORYPACK_RUNTIME_ROOT", str(runtime_root))
    for name in ("STORYPACK_LOG_DIR", "STORYPACK_MAX_CONCURRENCY"):
        monkeypatch.delenv(name, raising=False)
    runtime_paths.reset_runtime_roots()
    settings_module.get_settings.cache_clear()
    yield
    runtime_paths.reset_runtime_roots()
    settings_module.get_settings.cache_clear()


@pytest.fixture()
def settings() -> StoryPackSettings:
    return StoryPackSettings()


@pytest.fixture()
def make_story(tmp_path: Path) -> Callable[..., Story]:
    """Lay out a story project on disk and return its ``Story``.

    ``chapters`` maps chapter ids to a flow document (dict) or ``None`` for a
    chapter without one. Every blackboard path gets a small file whose bytes
    encode its relative path.
    """

    def _make(
        chapters: Dict[str, Optional[Dict[str, Any]]],
        *,
        story_id: str = "demo",
        blackboard: Optional[Dict[str, Any]] = None,
        chapter_files: Optional[Dict[str, Dict[str, bytes]]] = None,
        root: Optional[Path] = None,
    ) -> Story:
        root = root or (tmp_path / story_id)
        root.mkdir(parents=True, exist_ok=True)
        board = SAMPLE_BLACKBOARD if blackboard is None else blackboard

        (root / "blackboard.json").write_text(json.dumps(board), encoding="utf-8")
        (root / "story_cover.jpg").write_bytes(b"\xff\xd8\xff\xe0cover")
        index = {"id": story_id, "chapters": [{"id": cid} for cid in chapters]}
        (root / "index.json").write_text(json.dumps(index), encoding="utf-8")

        for category in ("backgrounds", "items", "characters", "sounds"):
            for paths in (board.get(category) or {}).values():
                for rel in [paths] if isinstance(paths, str) else paths:
                    target = root / "blackboard" / rel
                    target.parent.mkdir(parents=True, exist_ok=True)
                    target.write_bytes(payload_bytes(rel))

        story_chapters: List[StoryChapter] = []
        for chapter_id, document in chapters.items():
            chapter_dir = root / chapter_id
            chapter_dir.mkdir(parents=True, exist_ok=True)
            if document is not None:
                (chapter_dir / "flow.json").write_text(
                    json.dumps(document), encoding="utf-8"
                )
            for rel, data in ((chapter_files or {}).get(chapter_id) or {}).items():
                target = chapter_dir / rel
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(data)
            story_chapters.append(StoryChapter(id=chapter_id, path=chapter_dir))

        return Story(id=story_id, path=root, chapters=story_chapters)

    return _make


@pytest.fixture()
def sample_story(make_story) -> Story:
    """Three chapters: two with overlapping references and one without flow."""
    return make_story(
        {
            "ch1": flow(
                [
                    cmd("ShowBackgroundCommand", background="forest"),
                    cmd("DialogueCommand", speaker="ari", text="Rain again."),
                ],
                [
                    cmd("PlaySoundCommand", sound="rain"),
                    cmd("GiveItemCommand", item="key"),
                ],
            ),
            "ch2": flow(
                [
                    cmd("ShowBackgroundCommand", background="forest"),
                    cmd("ShowBackgroundCommand", background="castle"),
                    cmd("ShowCharacterCommand", character="ben"),
                    cmd("CameraShakeCommand", intensity=3),
                ],
                [cmd("PlayMusicCommand", sound="theme")],
            ),
            "ch3": None,
        },
        chapter_files={
            "ch1": {"notes/outline.txt": b"chapter one notes"},
            "ch3": {"draft.txt": b"unfinished", "deep/a/b/c.txt": b"nested"},
        },
    )
