"""
Prompt construction utilities for coloring book pages and stickers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

BASE_LINE_ART_STYLE = (
    "coloring book page for a child, thick clean black outlines, no shading, no color, "
    "vector art style, white background."
)

STICKER_STYLE = (
    "a vibrant, colorful, die-cut sticker with a thick white border, cartoon style, "
    "white background, high quality."
)

COVER_FONT_STYLES = {
    "playful": "a fun, rounded, playful font",
    "bold": "a modern, bold, sans-serif font",
    "cursive": "an elegant, flowing, cursive script font",
}

COVER_TITLE = "My Awesome Coloring Book"


class AgeLevel(str, Enum):
    PRESCHOOL = "preschool"
    KIDS = "kids"
    BIGKIDS = "bigkids"


_AGE_STYLE_SUFFIX = {
    AgeLevel.PRESCHOOL: "very simple shapes, extra thick bold outlines, minimal detail.",
    AgeLevel.KIDS: "simple shapes, clear outlines.",
    AgeLevel.BIGKIDS: "more detailed scenes and characters, varied line thickness.",
}


@dataclass(frozen=True)
class CoverOptions:
    """Cover customisation chosen on the order form."""

    template: str = "illustrated"
    color: str = "#8B5CF6"
    font: str = "playful"
    dedication: str = ""


@dataclass(frozen=True)
class PagePrompt:
    """
    One prompt of a product, with the label used in progress messages.

    ``uses_reference`` is True when the wording asks the model to redraw the
    uploaded photo, so the task must be sent with the photo attached.
    """

    label: str
    prompt: str
    uses_reference: bool = False


def line_art_style(age_level: AgeLevel) -> str:
    return f"{BASE_LINE_ART_STYLE} {_AGE_STYLE_SUFFIX[AgeLevel(age_level)]}"


def _cover_template_style(template: str, theme: str) -> str:
    styles = {
        "illustrated": (
            f'storybook illustration style, whimsical characters from the theme of "{theme}" '
            "frame the text."
        ),
        "bold": "a modern, graphic design style with clean shapes and high contrast.",
        "soft": "a soft, dreamy, pastel watercolor style with gentle textures.",
    }
    return styles.get(template, styles["illustrated"])


def _sentences(*parts: str | None) -> str:
    return " ".join(part.strip() for part in parts if part and part.strip())


def build_cover_prompt(
    theme: str,
    name: str,
    *,
    age_level: AgeLevel = AgeLevel.KIDS,
    cover: CoverOptions = CoverOptions(),
) -> str:
    """
    Build the coloring book cover prompt; the dedication clause is dropped when blank.
    """
    dedication = cover.dedication.strip()
    dedication_clause = (
        f'Include a small, elegant dedication line: "{dedication}".' if dedication else None
    )
    font_style = COVER_FONT_STYLES.get(cover.font, COVER_FONT_STYLES["playful"])
    color = cover.color.strip()
    color_clause = (
        f"The dominant color for the title text should be close to {color}." if color else None
    )

    return _sentences(
        f'A beautiful coloring book cover with the theme "{theme}".',
        f'The main title is "{COVER_TITLE}".',
        f'A subtitle or area at the bottom says "Made for {name}".',
        dedication_clause,
        f"The title font should be {font_style}.",
        f"The overall style is {_cover_template_style(cover.template, theme)}",
        color_clause,
        line_art_style(age_level),
    )


@dataclass(frozen=True)
class _PageTemplate:
    label: str
    generic: str
    personalised: str | None = None


_COLORING_PAGES: tuple[_PageTemplate, ...] = (
    _PageTemplate(
        label="Character Intro",
        generic=(
            'A single, large, friendly character from the theme of "{theme}". '
            'At the bottom of the page, add the simple caption: "{name} meets a new friend!".'
        ),
        personalised=(
            "Redraw the person in this photo as a line-art coloring book character. "
            'Place them in a simple scene related to the theme "{theme}". '
            "The character should be the main focus. "
            'At the bottom of the page, add the simple caption: "{name} joins the adventure!".'
        ),
    ),
    _PageTemplate(
        label="Joint Scene",
        generic=(
            'A simple scene with two characters from the theme of "{theme}" playing together. '
            'At the bottom of the page, add the simple caption: "{name} is having fun!".'
        ),
    ),
    _PageTemplate(
        label="Maze",
        generic=(
            "A simple, easy-to-solve maze for a child. The start and end points should be clear. "
            'The maze walls and path should be related to the theme "{theme}". '
            "For example, a rocket ship flying through an asteroid maze."
        ),
    ),
    _PageTemplate(
        label="Connect the Dots",
        generic=(
            "A simple connect-the-dots activity for a child, forming a character or object "
            'from the theme "{theme}". The dots should be numbered clearly.'
        ),
    ),
    _PageTemplate(
        label="Hidden Objects",
        generic=(
            'A "find the hidden items" activity page. In a large scene related to the theme '
            '"{theme}", hide 5 simple objects (like a star, a key, a fish). At the bottom of the '
            'page, show the 5 small items for the child to find. '
            'Caption: "Can you find these items, {name}?".'
        ),
    ),
    _PageTemplate(
        label="Name Tracing",
        generic=(
            'A coloring page with the name "{name}" written in large, fun, hollow bubble letters '
            "that can be colored in. Surround the name with small, simple doodles related to the "
            'theme of "{theme}". No other text on the page.'
        ),
    ),
    _PageTemplate(
        label="Pattern",
        generic=(
            'A fun pattern made of various small items from the theme of "{theme}". '
            'At the bottom of the page, add the simple caption: "So many cool things, {name}!".'
        ),
    ),
    _PageTemplate(
        label="Certificate",
        generic=(
            'A "Certificate of Awesome Coloring" award for {name}. It should have a large space '
            "for {name}'s name to be written, decorative borders related to the theme of "
            '"{theme}", and fun characters from the theme cheering. '
            'Include the text "For incredible creativity!".'
        ),
        personalised=(
            'Create a "Certificate of Awesome Coloring" award for {name}. Redraw the person from '
            "the photo as a line-art coloring book character, cheering on the side of the "
            "certificate. It should have a large space for {name}'s name to be written, "
            'decorative borders related to the theme "{theme}". '
            'Include the text "For incredible creativity!".'
        ),
    ),
)

COLORING_PAGE_LABELS: tuple[str, ...] = tuple(page.label for page in _COLORING_PAGES)


def build_coloring_page_prompts(
    theme: str,
    name: str,
    *,
    age_level: AgeLevel = AgeLevel.KIDS,
    has_reference: bool = False,
) -> list[PagePrompt]:
    """
    Build the eight interior page prompts in their fixed order.

    Only templates with a personalised variant switch to it, and only when a
    reference photo is available.
    """
    style = line_art_style(age_level)
    prompts: list[PagePrompt] = []
    for template in _COLORING_PAGES:
        personalise = has_reference and template.personalised is not None
        wording = template.personalised if personalise else template.generic
        prompts.append(
            PagePrompt(
                label=template.label,
                prompt=_sentences(wording.format(theme=theme, name=name), style),
                uses_reference=personalise,
            )
        )
    return prompts


_PERSONALISED_STICKER_ROTATION: tuple[tuple[str, bool], ...] = (
    (
        'Redraw the person in this photo as a cute cartoon character sticker. '
        'The character should be related to the theme of "{theme}".',
        True,
    ),
    ('A cute sticker of an animal related to the theme "{theme}".', False),
    (
        "Redraw the person in this photo as a fun cartoon character sticker, waving happily. "
        "The character's outfit should match the theme \"{theme}\".",
        True,
    ),
    ('A cute sticker of a food item related to the theme "{theme}".', False),
    ('A fun sticker of an object from the theme "{theme}".', False),
    (
        "Redraw the person in this photo as a funny cartoon character sticker making a silly "
        'face, surrounded by small doodles from the theme "{theme}".',
        True,
    ),
)


def build_sticker_prompts(
    theme: str,
    *,
    count: int = 6,
    has_reference: bool = False,
) -> list[PagePrompt]:
    """
    Build sticker prompts.

    Without a photo every sticker is generic. With a photo the curated
    rotation mixes personalised and generic designs so the set is varied.
    """
    if count < 1:
        raise ValueError("Sticker count must be at least 1.")

    prompts: list[PagePrompt] = []
    for index in range(count):
        label = f"Sticker {index + 1} of {count}"
        if has_reference:
            wording, personalised = _PERSONALISED_STICKER_ROTATION[
                index % len(_PERSONALISED_STICKER_ROTATION)
            ]
            prompt = _sentences(wording.format(theme=theme), STICKER_STYLE)
        else:
            personalised = False
            prompt = _sentences(
                f'A cute, fun sticker of a character or object related to the theme "{theme}".',
                f"Sticker {index + 1} of {count}.",
                STICKER_STYLE,
            )
        prompts.append(PagePrompt(label=label, prompt=prompt, uses_reference=personalised))
    return prompts


def personalised_count(prompts: Sequence[PagePrompt]) -> int:
    return sum(1 for prompt in prompts if prompt.uses_reference)
