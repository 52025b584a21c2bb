"""
Single-directory zip archiver.

Archives are deterministic: members are written in sorted order with a fixed
timestamp so re-exporting an unchanged story produces identical bytes.
Contents are streamed from disk rather than buffered in memory because
chapter packages carry audio and image payloads.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import zipfile
from pathlib import Path, PurePosixPath
from typing import List, Optional, Tuple

from storypack.errors import ArchiveError, MissingArchiveError

LOGGER = logging.getLogger(__name__)

ZIP_EPOCH: Tuple[int, int, int, int, int, int] = (2025, 1, 1, 0, 0, 0)
DEFAULT_BUFFER = 1024 * 1024


def archive_path_for(staging_dir: Path, name: str, suffix: str = ".zip") -> Path:
    """``<parent of staging_dir>/<name><suffix>``."""
    return Path(staging_dir).parent / f"{name}{suffix}"


def _sanitize_member(name: str) -> Optional[PurePosixPath]:
    raw = PurePosixPath(name.replace("\\", "/"))
    if raw.is_absolute():
        return None
    parts = [p for p in raw.parts if p not in {"", "."}]
    if not parts or any(part == ".." for part in parts):
        return None
    return PurePosixPath(*parts)


def _collect_entries(source: Path) -> List[Tuple[str, Path]]:
    entries: List[Tuple[str, Path]] = []
    for entry in sorted(source.rglob("*")):
        rel = entry.relative_to(source).as_posix()
        if entry.is_file():
            entries.append((rel, entry))
        elif entry.is_dir() and not any(entry.iterdir()):
            entries.append((rel + "/", entry))
    return entries


def compress(
    source_dir: str | Path,
    archive_path: str | Path,
    include_root_folder: bool = False,
    *,
    buffer_size: int = DEFAULT_BUFFER,
) -> Path:
    """Write every file below ``source_dir`` into ``archive_path``.

    With ``include_root_folder`` member names are prefixed with the source
    folder's name. An existing archive is replaced.
    """
    source = Path(source_dir)
    target = Path(archive_path)
    if not source.is_dir():
        raise ArchiveError(f"archive source is not a directory: {source}", archive=target)

    prefix = f"{source.name}/" if include_root_folder else ""
    entries = _collect_entries(source)
    target.parent.mkdir(parents=True, exist_ok=True)
    try:
        with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            if prefix and not entries:
                zf.writestr(_zip_info(prefix, mode=0o755), b"")
            for rel, path in entries:
                arcname = prefix + rel
                if arcname.endswith("/"):
                    zf.writestr(_zip_info(arcname, mode=0o755), b"")
                    continue
                info = _zip_info(arcname)
                with path.open("rb") as src, zf.open(info, "w") as dst:
                    shutil.copyfileobj(src, dst, buffer_size)
    except (OSError, zipfile.BadZipFile) as exc:
        target.unlink(missing_ok=True)
        raise ArchiveError(f"failed to write archive {target}: {exc}", archive=target) from exc

    LOGGER.debug("Compressed %s -> %s (%d entries)", source, target, len(entries))
    return target


def _zip_info(arcname: str, *, mode: int = 0o644) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(arcname, date_time=ZIP_EPOCH)
    info.compress_type = zipfile.ZIP_DEFLATED
    if arcname.endswith("/"):
        info.external_attr = (0o40000 | mode) << 16 | 0x10
    else:
        info.external_attr = mode << 16
    return info


def decompress(
    archive_path: str | Path,
    dest_dir: str | Path,
    overwrite: bool = True,
    *,
    buffer_size: int = DEFAULT_BUFFER,
) -> List[Path]:
    """Extract ``archive_path`` into ``dest_dir`` and return the written files.

    Existing files are replaced when ``overwrite`` is set and left untouched
    otherwise. Members with absolute or parent-relative names are skipped.
    """
    source = Path(archive_path)
    dest = Path(dest_dir)
    if not source.is_file():
        raise MissingArchiveError(f"archive not found: {source}", archive=source)

    written: List[Path] = []
    try:
        dest.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(source, "r") as zf:
            for info in zf.infolist():
                safe_rel = _sanitize_member(info.filename)
                if safe_rel is None:
                    LOGGER.warning(
                        "Skipping unsafe archive member %s in %s", info.filename, source
                    )
                    continue
                target = dest.joinpath(*safe_rel.parts)
                if info.is_dir():
                    target.mkdir(parents=True, exist_ok=True)
                    continue
                if target.exists() and not overwrite:
                    continue
                target.parent.mkdir(parents=True, exist_ok=True)
                with zf.open(info, "r") as src, target.open("wb") as dst:
                    shutil.copyfileobj(src, dst, buffer_size)
                written.append(target)
    except (OSError, zipfile.BadZipFile) as exc:
        raise ArchiveError(f"failed to extract {source}: {exc}", archive=source) from exc

    LOGGER.debug("Decompressed %s -> %s (%d files)", source, dest, len(written))
    return written


async def compress_async(
    source_dir: str | Path,
    archive_path: str | Path,
    include_root_folder: bool = False,
    *,
    buffer_size: int = DEFAULT_BUFFER,
) -> Path:
    return await asyncio.to_thread(
        compress,
        source_dir,
        archive_path,
        include_root_folder,
        buffer_size=buffer_size,
    )


async def decompress_async(
    archive_path: str | Path,
    dest_dir: str | Path,
    overwrite: bool = True,
    *,
    buffer_size: int = DEFAULT_BUFFER,
) -> List[Path]:
    return await asyncio.to_thread(
        decompress, archive_path, dest_dir, overwrite, buffer_size=buffer_size
    )


__all__ = [
    "ZIP_EPOCH",
    "archive_path_for",
    "compress",
    "compress_async",
    "decompress",
    "decompress_async",
]
