"""
Plans, tasks, results and the bundles handed to document assembly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence, Union

import yaml

from colory.common.media import ReferenceImage, is_data_uri
from colory.story_generation import StoryCharacters


class TaskKind(str, Enum):
    IMAGE = "image"
    IMAGE_WITH_REFERENCE = "imageWithReference"
    TEXT = "text"


class ExecutionMode(str, Enum):
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"


class ProductKind(str, Enum):
    COLORING_BOOK = "coloring_book"
    STICKER_SET = "sticker_set"
    STORYBOOK = "storybook"


@dataclass(frozen=True)
class GenerationTask:
    """
    One request to the generation backend.

    ``position`` is the task's ordinal within its plan; results are always
    returned in position order.
    """

    position: int
    prompt: str
    kind: TaskKind
    label: str
    reference_image: ReferenceImage | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.position < 0:
            raise ValueError("Task position must be non-negative.")
        if not self.prompt.strip():
            raise ValueError(f"Task {self.label!r} has an empty prompt.")
        if (self.reference_image is not None) != (self.kind is TaskKind.IMAGE_WITH_REFERENCE):
            raise ValueError(
                f"Task {self.label!r}: a reference image is required for, and only for, "
                f"{TaskKind.IMAGE_WITH_REFERENCE.value} tasks."
            )

    @property
    def uses_reference(self) -> bool:
        return self.kind is TaskKind.IMAGE_WITH_REFERENCE


StageBuilder = Callable[[Sequence[str], int], Sequence[GenerationTask]]


@dataclass(frozen=True)
class PlanStage:
    """
    Tasks that share an execution mode.

    A deferred stage has no tasks until every earlier stage has finished; its
    ``builder`` receives the outputs produced so far plus the position of its
    first task and must return exactly ``size`` tasks.
    """

    mode: ExecutionMode
    tasks: tuple[GenerationTask, ...] = ()
    builder: StageBuilder | None = field(default=None, compare=False, repr=False)
    size: int = 0

    def __post_init__(self) -> None:
        if self.builder is None:
            object.__setattr__(self, "size", len(self.tasks))
        elif self.tasks:
            raise ValueError("A deferred stage cannot also declare static tasks.")
        elif self.size < 1:
            raise ValueError("A deferred stage must declare how many tasks it will build.")

    @property
    def deferred(self) -> bool:
        return self.builder is not None

    def resolve(self, outputs: Sequence[str], start: int) -> tuple[GenerationTask, ...]:
        if self.builder is None:
            return self.tasks
        tasks = tuple(self.builder(tuple(outputs), start))
        expected = list(range(start, start + self.size))
        if [task.position for task in tasks] != expected:
            raise ValueError(
                f"Deferred stage built positions {[task.position for task in tasks]}, "
                f"expected {expected}."
            )
        return tasks


@dataclass(frozen=True)
class GenerationPlan:
    """Ordered stages of tasks derived from one request."""

    product: ProductKind
    stages: tuple[PlanStage, ...]

    def __post_init__(self) -> None:
        if not self.stages:
            raise ValueError("A plan needs at least one stage.")
        offset = 0
        for stage in self.stages:
            if not stage.deferred:
                positions = [task.position for task in stage.tasks]
                if positions != list(range(offset, offset + stage.size)):
                    raise ValueError("Task positions must follow plan order without gaps.")
            offset += stage.size

    @property
    def total_tasks(self) -> int:
        return sum(stage.size for stage in self.stages)

    @property
    def tasks(self) -> tuple[GenerationTask, ...]:
        """Tasks known before execution (deferred stages excluded)."""
        return tuple(task for stage in self.stages for task in stage.tasks)

    @property
    def needs_reference(self) -> bool:
        return any(task.uses_reference for task in self.tasks)


@dataclass(frozen=True)
class GenerationResult:
    """Outputs of a completed plan, in plan order."""

    tasks: tuple[GenerationTask, ...]
    outputs: tuple[str, ...]

    def __post_init__(self) -> None:
        if len(self.tasks) != len(self.outputs):
            raise ValueError("Every task must have exactly one output.")

    def output_for(self, position: int) -> str:
        return self.outputs[position]


def _require_images(images: Sequence[str], field_name: str) -> None:
    for index, image in enumerate(images):
        if not is_data_uri(image):
            raise ValueError(f"{field_name}[{index}] is not a displayable data URI.")


@dataclass(frozen=True)
class ColoringBookBundle:
    cover_image: str
    pages: tuple[str, ...]
    theme: str
    name: str
    product: ProductKind = field(default=ProductKind.COLORING_BOOK, init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "pages", tuple(self.pages))
        _require_images([self.cover_image], "cover_image")
        _require_images(self.pages, "pages")

    def to_dict(self) -> dict[str, Any]:
        return {
            "product": self.product.value,
            "theme": self.theme,
            "name": self.name,
            "cover_image": self.cover_image,
            "pages": list(self.pages),
        }


@dataclass(frozen=True)
class StickerSetBundle:
    stickers: tuple[str, ...]
    theme: str
    product: ProductKind = field(default=ProductKind.STICKER_SET, init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "stickers", tuple(self.stickers))
        _require_images(self.stickers, "stickers")

    def to_dict(self) -> dict[str, Any]:
        return {
            "product": self.product.value,
            "theme": self.theme,
            "stickers": list(self.stickers),
        }


@dataclass(frozen=True)
class StorybookBundle:
    story_key: str
    title: str
    narrative: str
    cover_image: str
    illustrations: tuple[str, ...]
    characters: StoryCharacters
    product: ProductKind = field(default=ProductKind.STORYBOOK, init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "illustrations", tuple(self.illustrations))
        if not self.narrative.strip():
            raise ValueError("Storybook narrative must not be empty.")
        _require_images([self.cover_image], "cover_image")
        _require_images(self.illustrations, "illustrations")

    def to_dict(self) -> dict[str, Any]:
        return {
            "product": self.product.value,
            "story_key": self.story_key,
            "title": self.title,
            "characters": self.characters.as_dict(),
            "narrative": self.narrative,
            "cover_image": self.cover_image,
            "illustrations": list(self.illustrations),
        }


Bundle = Union[ColoringBookBundle, StickerSetBundle, StorybookBundle]


def bundle_to_yaml(bundle: Bundle) -> str:
    return yaml.safe_dump(bundle.to_dict(), sort_keys=False, allow_unicode=True)


def bundle_from_dict(payload: Mapping[str, Any]) -> Bundle:
    """
    Rebuild a bundle from :meth:`to_dict` output.
    """
    try:
        product = ProductKind(payload["product"])
    except (KeyError, ValueError) as exc:
        raise ValueError("Bundle payload must include a known 'product'.") from exc

    try:
        if product is ProductKind.COLORING_BOOK:
            return ColoringBookBundle(
                cover_image=str(payload["cover_image"]),
                pages=tuple(str(page) for page in payload["pages"]),
                theme=str(payload["theme"]),
                name=str(payload["name"]),
            )
        if product is ProductKind.STICKER_SET:
            return StickerSetBundle(
                stickers=tuple(str(sticker) for sticker in payload["stickers"]),
                theme=str(payload["theme"]),
            )
        characters = payload.get("characters") or {}
        return StorybookBundle(
            story_key=str(payload["story_key"]),
            title=str(payload["title"]),
            narrative=str(payload["narrative"]),
            cover_image=str(payload["cover_image"]),
            illustrations=tuple(str(image) for image in payload["illustrations"]),
            characters=StoryCharacters(
                character1_name=str(characters.get("character1_name", "")),
                character2_name=str(characters.get("character2_name", "")),
                character3_name=str(characters.get("character3_name", "")),
            ),
        )
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Invalid {product.value} bundle payload.") from exc


def bundle_from_yaml(source: str | Path) -> Bundle:
    path = Path(source)
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, Mapping):
        raise ValueError("Bundle YAML must deserialize to a mapping.")
    return bundle_from_dict(data)
