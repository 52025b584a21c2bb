from storypack.config.settings import StoryPackSettings, get_settings, reload_settings

__all__ = ["StoryPackSettings", "get_settings", "reload_settings"]
