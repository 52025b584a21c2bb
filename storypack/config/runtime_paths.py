"""
Runtime paths helpers for storypack.

Log files live in an OS-appropriate location resolved through
``platformdirs``. ``STORYPACK_RUNTIME_ROOT`` keeps them under a single
portable folder, and ``STORYPACK_LOG_DIR`` wins over both.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from platformdirs import PlatformDirs

APP_NAME = os.getenv("STORYPACK_APP_NAME", "storypack")
APP_AUTHOR = os.getenv("STORYPACK_APP_AUTHOR", "storypack")


def _expand(path: Optional[str]) -> Optional[Path]:
    if not path:
        return None
    return Path(path).expanduser().resolve()


@lru_cache(maxsize=1)
def _logs_root() -> Path:
    override_root = _expand(os.getenv("STORYPACK_RUNTIME_ROOT"))
    if override_root:
        logs = override_root / "logs"
    else:
        dirs = PlatformDirs(appname=APP_NAME, appauthor=APP_AUTHOR, roaming=False)
        logs = Path(dirs.user_log_path)

    logs = _expand(os.getenv("STORYPACK_LOG_DIR")) or logs

    if logs.exists() and not logs.is_dir():
        raise RuntimeError(
            f"Runtime path {logs} exists but is not a directory. "
            "Remove or relocate the conflicting file and retry."
        )
    logs.mkdir(parents=True, exist_ok=True)
    return logs


def logs_dir(*parts: str | os.PathLike[str]) -> Path:
    path = _logs_root().joinpath(*[Path(p) for p in parts if p])
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def reset_runtime_roots() -> None:
    """Forget the cached root so environment overrides are re-read."""
    _logs_root.cache_clear()


__all__ = ["logs_dir", "reset_runtime_roots"]
