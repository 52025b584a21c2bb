from storypack.resources.bundle import (
    CATEGORIES,
    ResourceBundle,
    ResourceCategory,
    ResourceSet,
    diff_and_merge,
)
from storypack.resources.extractor import ExtractionStats, extract_references, extract_with_stats
from storypack.resources.resolvers import (
    CommandResolver,
    ResolverRegistry,
    default_registry,
    register_resolver,
)

__all__ = [
    "CATEGORIES",
    "CommandResolver",
    "ExtractionStats",
    "ResolverRegistry",
    "ResourceBundle",
    "ResourceCategory",
    "ResourceSet",
    "default_registry",
    "diff_and_merge",
    "extract_references",
    "extract_with_stats",
    "register_resolver",
]
