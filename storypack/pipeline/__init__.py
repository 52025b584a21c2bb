from storypack.pipeline.export import (
    ChapterExport,
    ExportReport,
    StoryExporter,
    export_resources,
    export_resources_sync,
)
from storypack.pipeline.importer import (
    StoryImporter,
    import_story,
    import_story_sync,
    restore_chapter,
    restore_chapter_sync,
)

__all__ = [
    "ChapterExport",
    "ExportReport",
    "StoryExporter",
    "StoryImporter",
    "export_resources",
    "export_resources_sync",
    "import_story",
    "import_story_sync",
    "restore_chapter",
    "restore_chapter_sync",
]
