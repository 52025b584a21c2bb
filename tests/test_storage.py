from __future__ import annotations

import asyncio
import zipfile
from pathlib import Path

import pytest

from storypack.errors import ArchiveError, MissingArchiveError
from storypack.storage.archiver import (
    archive_path_for,
    compress,
    compress_async,
    decompress,
)
from storypack.storage.copier import copy_files, mirror_tree, remove_tree


def _tree(root: Path) -> dict[str, bytes]:
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


@pytest.fixture()
def source_dir(tmp_path: Path) -> Path:
    source = tmp_path / "Export" / "ch1"
    (source / "backgrounds").mkdir(parents=True)
    (source / "backgrounds" / "forest.png").write_bytes(b"\x89PNG forest")
    (source / "sounds").mkdir()
    (source / "sounds" / "rain.ogg").write_bytes(b"OggS" + bytes(range(256)) * 64)
    (source / "empty").mkdir()
    return source


def test_archive_path_sits_next_to_staging_folder(source_dir: Path):
    assert archive_path_for(source_dir, "ch1") == source_dir.parent / "ch1.zip"


def test_compress_without_root_folder(source_dir: Path):
    archive = compress(source_dir, archive_path_for(source_dir, "ch1"))
    with zipfile.ZipFile(archive) as zf:
        names = zf.namelist()
    assert names == ["backgrounds/forest.png", "empty/", "sounds/rain.ogg"]


def test_compress_with_root_folder(source_dir: Path, tmp_path: Path):
    archive = compress(source_dir, tmp_path / "with_root.zip", include_root_folder=True)
    with zipfile.ZipFile(archive) as zf:
        assert all(name.startswith("ch1/") for name in zf.namelist())


def test_compress_is_deterministic(source_dir: Path, tmp_path: Path):
    first = compress(source_dir, tmp_path / "a.zip")
    second = compress(source_dir, tmp_path / "b.zip")
    assert first.read_bytes() == second.read_bytes()


def test_compress_requires_directory(tmp_path: Path):
    with pytest.raises(ArchiveError):
        compress(tmp_path / "missing", tmp_path / "out.zip")


def test_round_trip_is_byte_identical(source_dir: Path, tmp_path: Path):
    archive = asyncio.run(compress_async(source_dir, tmp_path / "ch1.zip"))
    dest = tmp_path / "restored"

    written = decompress(archive, dest)

    assert _tree(dest) == _tree(source_dir)
    assert len(written) == 2
    assert (dest / "empty").is_dir()


def test_decompress_overwrite_flag(source_dir: Path, tmp_path: Path):
    archive = compress(source_dir, tmp_path / "ch1.zip")
    dest = tmp_path / "dest"
    (dest / "backgrounds").mkdir(parents=True)
    local = dest / "backgrounds" / "forest.png"
    local.write_bytes(b"local edit")

    decompress(archive, dest, overwrite=False)
    assert local.read_bytes() == b"local edit"

    decompress(archive, dest, overwrite=True)
    assert local.read_bytes() == b"\x89PNG forest"


def test_decompress_skips_unsafe_members(tmp_path: Path):
    archive = tmp_path / "evil.zip"
    with zipfile.ZipFile(archive, "w") as zf:
        zf.writestr("../escape.txt", b"nope")
        zf.writestr("/abs.txt", b"nope")
        zf.writestr("ok/fine.txt", b"yes")
    dest = tmp_path / "dest"

    written = decompress(archive, dest)

    assert written == [dest / "ok" / "fine.txt"]
    assert not (tmp_path / "escape.txt").exists()


def test_decompress_missing_and_corrupt(tmp_path: Path):
    with pytest.raises(MissingArchiveError):
        decompress(tmp_path / "nope.zip", tmp_path / "out")

    corrupt = tmp_path / "corrupt.zip"
    corrupt.write_bytes(b"this is not a zip")
    with pytest.raises(ArchiveError):
        decompress(corrupt, tmp_path / "out")


def test_copy_files_creates_parents_and_overwrites(tmp_path: Path):
    root = tmp_path / "blackboard"
    (root / "characters" / "ari").mkdir(parents=True)
    (root / "characters" / "ari" / "idle.png").write_bytes(b"ari")
    target = tmp_path / "staging"
    (target / "characters" / "ari").mkdir(parents=True)
    (target / "characters" / "ari" / "idle.png").write_bytes(b"stale, longer content")

    copied = asyncio.run(
        copy_files(root, target, ["characters/ari/idle.png", "characters/ari/idle.png"])
    )

    assert copied == [target / "characters" / "ari" / "idle.png"]
    assert copied[0].read_bytes() == b"ari"


def test_copy_files_rejects_paths_outside_root(tmp_path: Path):
    with pytest.raises(ValueError):
        asyncio.run(copy_files(tmp_path, tmp_path / "out", ["../secret.txt"]))


def test_copy_files_missing_source_propagates(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        asyncio.run(copy_files(tmp_path, tmp_path / "out", ["absent.png"]))


def test_mirror_tree_handles_deep_nesting(tmp_path: Path):
    source = tmp_path / "chapter"
    deep = source.joinpath(*[f"d{i}" for i in range(60)])
    deep.mkdir(parents=True)
    (deep / "leaf.txt").write_bytes(b"leaf")
    (source / "top.txt").write_bytes(b"top")
    target = tmp_path / "mirror"

    copied = mirror_tree(source, target)

    assert copied == 2
    assert _tree(target) == _tree(source)


def test_mirror_tree_missing_source_is_noop(tmp_path: Path):
    assert mirror_tree(tmp_path / "absent", tmp_path / "out") == 0
    assert not (tmp_path / "out").exists()


def test_remove_tree_tolerates_absence(tmp_path: Path):
    remove_tree(tmp_path / "absent")
    folder = tmp_path / "staging"
    (folder / "x").mkdir(parents=True)
    remove_tree(folder)
    assert not folder.exists()
