"""
The library of classic tales that storybooks are personalised from.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from importlib import resources
from typing import Any, Mapping

import yaml

_LIBRARY_RESOURCE = "stories.yaml"


@dataclass(frozen=True)
class StoryTemplate:
    """
    A classic tale and the cast whose names the user may replace.

    Attributes
    ----------
    key:
        Stable identifier used by requests (e.g. ``"cinderella"``).
    title:
        Fixed title printed on the storybook cover.
    original_characters:
        Names or titles of the hero, the second and the third character as
        they appear in ``text``.
    helper_role:
        Short description of the third character's role shown on the form.
    text:
        The full tale, paragraphs separated by blank lines.
    """

    key: str
    title: str
    original_characters: tuple[str, str, str]
    helper_role: str
    text: str

    @classmethod
    def from_mapping(cls, key: str, data: Mapping[str, Any]) -> "StoryTemplate":
        try:
            characters = tuple(str(name).strip() for name in data["characters"])
            title = str(data["title"]).strip()
            text = str(data["text"]).strip()
        except (KeyError, TypeError) as exc:
            raise ValueError(f"Invalid story entry {key!r}.") from exc

        if len(characters) != 3 or not all(characters):
            raise ValueError(f"Story {key!r} must list exactly three character names.")
        if not title or not text:
            raise ValueError(f"Story {key!r} is missing its title or text.")

        return cls(
            key=key,
            title=title,
            original_characters=(characters[0], characters[1], characters[2]),
            helper_role=str(data.get("helper_role") or characters[2]).strip(),
            text=text,
        )

    @property
    def paragraphs(self) -> list[str]:
        return split_paragraphs(self.text)


def split_paragraphs(text: str) -> list[str]:
    return [block.strip() for block in text.replace("\r\n", "\n").split("\n\n") if block.strip()]


@lru_cache(maxsize=1)
def load_story_library() -> dict[str, StoryTemplate]:
    """
    Load the packaged story library, keyed by story identifier.
    """
    source = resources.files(__package__).joinpath("data").joinpath(_LIBRARY_RESOURCE)
    data = yaml.safe_load(source.read_text(encoding="utf-8"))
    if not isinstance(data, Mapping) or not isinstance(data.get("stories"), Mapping):
        raise ValueError("Story library YAML must contain a 'stories' mapping.")

    return {
        str(key): StoryTemplate.from_mapping(str(key), entry)
        for key, entry in data["stories"].items()
    }


def get_story(key: str) -> StoryTemplate:
    library = load_story_library()
    try:
        return library[key]
    except KeyError:
        known = ", ".join(sorted(library))
        raise KeyError(f"Unknown story {key!r}. Available stories: {known}.") from None


def story_titles() -> dict[str, str]:
    return {key: story.title for key, story in load_story_library().items()}
