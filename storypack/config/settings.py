# storypack/config/settings.py
from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoryPackSettings(BaseSettings):
    """
    Export/import settings.
    Loads from ``.env`` or ``STORYPACK_*`` environment variables.
    """

    model_config = SettingsConfigDict(
        env_prefix="STORYPACK_", env_file=".env", extra="ignore"
    )

    # Project layout
    flow_file: str = "flow.json"
    index_file: str = "index.json"
    cover_file: str = "story_cover.jpg"
    blackboard_file: str = "blackboard.json"
    blackboard_dir: str = "blackboard"
    header_file: str = "content.elp"
    export_dir: str = "Export"

    # Archives
    archive_suffix: str = ".zip"
    include_root_folder: bool = False

    # Pipeline
    max_concurrency: int = Field(default=4, ge=1)
    copy_buffer_size: int = Field(default=1024 * 1024, ge=4096)

    log_level: str = "INFO"

    @field_validator("archive_suffix")
    @classmethod
    def _dotted_suffix(cls, value: str) -> str:
        value = value.strip()
        if value and not value.startswith("."):
            value = "." + value
        return value


@lru_cache(maxsize=1)
def get_settings() -> StoryPackSettings:
    return StoryPackSettings()


def reload_settings() -> StoryPackSettings:
    get_settings.cache_clear()
    return get_settings()
