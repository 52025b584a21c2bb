"""Pydantic models for the documents read and written by storypack."""

from storypack.models.blackboard import BlackboardData
from storypack.models.flow import CommandBlock, FlowData, command_kind
from storypack.models.story import Story, StoryChapter, StoryHeader

__all__ = [
    "BlackboardData",
    "CommandBlock",
    "FlowData",
    "Story",
    "StoryChapter",
    "StoryHeader",
    "command_kind",
]
