"""
Story generation utilities for personalised Colory storybooks.
"""

from .library import StoryTemplate, get_story, load_story_library, split_paragraphs, story_titles
from .prompting import (
    DEFAULT_ILLUSTRATION_COUNT,
    StoryCharacters,
    build_illustration_prompt,
    build_moments_prompt,
    build_personalisation_prompt,
    build_storybook_cover_prompt,
    illustration_labels,
    parse_moments,
)

__all__ = [
    "DEFAULT_ILLUSTRATION_COUNT",
    "StoryCharacters",
    "StoryTemplate",
    "build_illustration_prompt",
    "build_moments_prompt",
    "build_personalisation_prompt",
    "build_storybook_cover_prompt",
    "get_story",
    "illustration_labels",
    "load_story_library",
    "parse_moments",
    "split_paragraphs",
    "story_titles",
]
