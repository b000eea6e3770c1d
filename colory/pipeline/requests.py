"""
Typed generation requests, one variant per product.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from colory.ai_generation.prompting import AgeLevel, CoverOptions
from colory.common.errors import InvalidRequest
from colory.common.media import ReferenceImage
from colory.story_generation import StoryCharacters, load_story_library


def _require_text(value: str, field_name: str) -> str:
    text = (value or "").strip()
    if not text:
        raise InvalidRequest(f"'{field_name}' must be a non-empty string.")
    return text


@dataclass(frozen=True)
class ColoringBookRequest:
    theme: str
    name: str
    age_level: AgeLevel = AgeLevel.KIDS
    cover: CoverOptions = field(default_factory=CoverOptions)
    reference_image: ReferenceImage | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "theme", _require_text(self.theme, "theme"))
        object.__setattr__(self, "name", _require_text(self.name, "name"))
        try:
            object.__setattr__(self, "age_level", AgeLevel(self.age_level))
        except ValueError as exc:
            known = ", ".join(level.value for level in AgeLevel)
            raise InvalidRequest(
                f"Unknown age level {self.age_level!r}. Expected one of: {known}."
            ) from exc


@dataclass(frozen=True)
class StickerRequest:
    theme: str
    reference_image: ReferenceImage | None = None
    count: int = 6

    def __post_init__(self) -> None:
        object.__setattr__(self, "theme", _require_text(self.theme, "theme"))
        if self.count < 1:
            raise InvalidRequest("Sticker count must be at least 1.")


@dataclass(frozen=True)
class StorybookRequest:
    story: str
    character1_name: str
    character2_name: str = ""
    character3_name: str = ""
    reference_image: ReferenceImage | None = None

    def __post_init__(self) -> None:
        library = load_story_library()
        if self.story not in library:
            known = ", ".join(sorted(library))
            raise InvalidRequest(f"Unknown story {self.story!r}. Available stories: {known}.")
        object.__setattr__(
            self, "character1_name", _require_text(self.character1_name, "character1_name")
        )
        object.__setattr__(self, "character2_name", (self.character2_name or "").strip())
        object.__setattr__(self, "character3_name", (self.character3_name or "").strip())

    @property
    def characters(self) -> StoryCharacters:
        return StoryCharacters(
            character1_name=self.character1_name,
            character2_name=self.character2_name,
            character3_name=self.character3_name,
        )


GenerationRequest = Union[ColoringBookRequest, StickerRequest, StorybookRequest]
