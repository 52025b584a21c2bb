from __future__ import annotations

import asyncio
import logging
import os
import shutil
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

LOGGER = logging.getLogger(__name__)


def copy_file(source: str | Path, target: str | Path) -> Path:
    """Copy ``source`` byte-for-byte to ``target``, replacing it if present."""
    target = Path(target)
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(source, target)
    return target


async def copy_files(
    root: str | Path,
    target_folder: str | Path,
    relpaths: Iterable[str],
    *,
    limit: Optional[asyncio.Semaphore] = None,
) -> List[Path]:
    """Copy ``root/<rel>`` to ``target_folder/<rel>`` for every relative path.

    Copies run concurrently; destinations are distinct so no coordination is
    needed beyond the optional ``limit``. The first failure propagates.
    """
    root = Path(root)
    target_folder = Path(target_folder)
    unique = list(dict.fromkeys(_normalise_rel(rel) for rel in relpaths))

    async def _copy(rel: str) -> Path:
        source = root / rel
        destination = target_folder / rel
        if limit is None:
            return await asyncio.to_thread(copy_file, source, destination)
        async with limit:
            return await asyncio.to_thread(copy_file, source, destination)

    return list(await asyncio.gather(*(_copy(rel) for rel in unique)))


def _normalise_rel(rel: str) -> str:
    parts = [p for p in Path(str(rel).replace("\\", "/")).parts if p not in {"", "."}]
    if not parts or Path(rel).is_absolute() or ".." in parts:
        raise ValueError(f"resource path must be relative and inside its root: {rel!r}")
    return Path(*parts).as_posix()


def mirror_tree(source: str | Path, target: str | Path) -> int:
    """Copy the directory tree at ``source`` into ``target``; return files copied.

    Walks with an explicit stack so deep project trees do not hit the
    recursion limit. Existing files in ``target`` are overwritten.
    """
    source = Path(source)
    target = Path(target)
    if not source.is_dir():
        return 0

    copied = 0
    pending: List[Tuple[Path, Path]] = [(source, target)]
    while pending:
        src_dir, dst_dir = pending.pop()
        dst_dir.mkdir(parents=True, exist_ok=True)
        with os.scandir(src_dir) as entries:
            for entry in entries:
                src_path = Path(entry.path)
                dst_path = dst_dir / entry.name
                if entry.is_dir(follow_symlinks=False):
                    pending.append((src_path, dst_path))
                elif entry.is_file():
                    shutil.copyfile(src_path, dst_path)
                    copied += 1
    return copied


def remove_tree(path: str | Path) -> None:
    path = Path(path)
    if path.is_dir():
        shutil.rmtree(path)
        LOGGER.debug("Removed staging folder %s", path)


__all__ = ["copy_file", "copy_files", "mirror_tree", "remove_tree"]
