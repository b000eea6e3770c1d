"""
Prompt construction utilities for the storybook workflow.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Sequence

from .library import StoryTemplate, split_paragraphs

DEFAULT_ILLUSTRATION_COUNT = 3

ILLUSTRATION_STYLE = (
    "Warm, whimsical children's picture-book illustration, soft watercolor textures, "
    "gentle lighting, friendly expressions, no text or lettering in the image."
)

_LIST_MARKER = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*")
_CODE_FENCE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")


@dataclass(frozen=True)
class StoryCharacters:
    """Names chosen by the user for the three replaceable characters."""

    character1_name: str
    character2_name: str = ""
    character3_name: str = ""

    def as_dict(self) -> dict[str, str]:
        return {
            "character1_name": self.character1_name,
            "character2_name": self.character2_name,
            "character3_name": self.character3_name,
        }


def build_personalisation_prompt(story: StoryTemplate, characters: StoryCharacters) -> str:
    """
    Ask the text model to rewrite a classic tale with the user's names.

    Replacements for the second and third characters are only requested when
    the user supplied a name for them.
    """
    original1, original2, original3 = story.original_characters
    replacements = [f'Replace the name "{original1}" with "{characters.character1_name.strip()}".']
    if characters.character2_name.strip():
        replacements.append(
            f'Also, replace the name or title "{original2}" with "{characters.character2_name.strip()}".'
        )
    if characters.character3_name.strip():
        replacements.append(
            f'Finally, replace the name or title "{original3}" with "{characters.character3_name.strip()}".'
        )

    return f"""You are a master storyteller. Your task is to rewrite the following classic story. {" ".join(replacements)} Make the replacements seamless and natural throughout the entire text, ensuring grammar and pronouns are correct. Do not add any new plot points or change the story's meaning. Just perform the name replacements. Keep the blank lines between paragraphs.

Here is the story:
---
{story.text}
---
"""


def build_moments_prompt(narrative: str, *, count: int = DEFAULT_ILLUSTRATION_COUNT) -> str:
    """
    Ask the text model for the key visual moments of a finished narrative.
    """
    return f"""You are a children's picture-book art director. Read the story below and pick the {count} most visual key moments, in the order they happen.
For each moment write one or two sentences describing what an illustrator should draw: the characters by name, where they are, what they are doing, and the mood.
Respond with a JSON list of {count} strings and nothing else.

Story:
\"\"\"
{narrative.strip()}
\"\"\"
"""


def parse_moments(
    text: str,
    *,
    narrative: str = "",
    count: int = DEFAULT_ILLUSTRATION_COUNT,
) -> list[str]:
    """
    Extract moment descriptions from the model's reply.

    Accepts a JSON list (optionally wrapped in a code fence) or one moment per
    line. The result always holds ``count`` entries: missing moments are
    filled with the opening sentences of evenly spaced narrative paragraphs.
    """
    moments = _parse_json_moments(text)
    if moments is None:
        moments = _parse_line_moments(text)

    moments = [moment for moment in moments if moment][:count]

    if len(moments) < count:
        for excerpt in _paragraph_excerpts(narrative, count):
            if len(moments) >= count:
                break
            if excerpt not in moments:
                moments.append(excerpt)

    if len(moments) < count:
        raise ValueError(f"Could not derive {count} illustration moments from the story.")

    return moments


def _parse_json_moments(text: str) -> list[str] | None:
    cleaned = _CODE_FENCE.sub("", text.strip()).strip()
    try:
        parsed: Any = json.loads(cleaned)
    except json.JSONDecodeError:
        return None

    if isinstance(parsed, dict):
        parsed = parsed.get("moments")
    if not isinstance(parsed, list):
        return None

    moments: list[str] = []
    for item in parsed:
        if isinstance(item, dict):
            item = item.get("description") or item.get("moment") or ""
        moments.append(str(item).strip())
    return moments


def _parse_line_moments(text: str) -> list[str]:
    moments: list[str] = []
    for raw in text.replace("\r", "\n").split("\n"):
        cleaned = _LIST_MARKER.sub("", raw).strip().strip('"').strip()
        if cleaned and not cleaned.startswith("```"):
            moments.append(cleaned)
    return moments


def _paragraph_excerpts(narrative: str, count: int) -> list[str]:
    paragraphs = split_paragraphs(narrative)
    if not paragraphs:
        return []
    step = max(len(paragraphs) // count, 1)
    excerpts: list[str] = []
    for index in range(0, len(paragraphs), step):
        first_sentence = re.split(r"(?<=[.!?])\s", paragraphs[index], maxsplit=1)[0]
        excerpts.append(first_sentence.strip())
    return excerpts


def build_storybook_cover_prompt(
    title: str,
    characters: StoryCharacters,
    *,
    has_reference: bool = False,
) -> str:
    hero = characters.character1_name.strip()
    if has_reference:
        subject = (
            f"Redraw the person in this photo as {hero}, the hero of the story, "
            "standing in the center of the cover."
        )
    else:
        subject = f"{hero}, the hero of the story, stands in the center of the cover."
    return (
        f'A magical storybook cover for the tale "{title}". {subject} '
        f'The title "{title}" is written in large, friendly lettering at the top. '
        "Rich, colorful fairy-tale scenery surrounds the hero. "
        "Warm, whimsical children's picture-book illustration, soft watercolor textures."
    )


def build_illustration_prompt(moment: str, characters: StoryCharacters) -> str:
    cast = [
        name.strip()
        for name in (
            characters.character1_name,
            characters.character2_name,
            characters.character3_name,
        )
        if name.strip()
    ]
    cast_clause = f" Characters: {', '.join(cast)}." if cast else ""
    return f"Illustrate this moment from a fairy tale: {moment.strip()}{cast_clause} {ILLUSTRATION_STYLE}"


def illustration_labels(count: int = DEFAULT_ILLUSTRATION_COUNT) -> Sequence[str]:
    return tuple(f"Illustration {index + 1}" for index in range(count))
