"""
Turns a generation request into an executable plan.

Planning is pure: the same request always yields the same tasks. The only
late-bound work is the storybook's moment and illustration stages, which can
only be worded once the personalised narrative exists.
"""

from __future__ import annotations

import logging
from typing import Sequence

from colory.ai_generation.prompting import (
    PagePrompt,
    build_coloring_page_prompts,
    build_cover_prompt,
    build_sticker_prompts,
    personalised_count,
)
from colory.common.errors import InvalidRequest
from colory.common.media import ReferenceImage
from colory.story_generation import (
    DEFAULT_ILLUSTRATION_COUNT,
    StoryCharacters,
    build_illustration_prompt,
    build_moments_prompt,
    build_personalisation_prompt,
    build_storybook_cover_prompt,
    get_story,
    illustration_labels,
    parse_moments,
)

from .models import (
    ExecutionMode,
    GenerationPlan,
    GenerationTask,
    PlanStage,
    ProductKind,
    TaskKind,
)
from .requests import ColoringBookRequest, GenerationRequest, StickerRequest, StorybookRequest

logger = logging.getLogger(__name__)

NARRATIVE_POSITION = 0
STORY_COVER_POSITION = 1
MOMENTS_POSITION = 2
FIRST_ILLUSTRATION_POSITION = 3


def _image_task(
    position: int,
    label: str,
    prompt: str,
    *,
    reference: ReferenceImage | None,
    personalise: bool,
) -> GenerationTask:
    if personalise and reference is not None:
        return GenerationTask(
            position=position,
            prompt=prompt,
            kind=TaskKind.IMAGE_WITH_REFERENCE,
            label=label,
            reference_image=reference,
        )
    return GenerationTask(position=position, prompt=prompt, kind=TaskKind.IMAGE, label=label)


def _tasks_from_prompts(
    prompts: Sequence[PagePrompt],
    *,
    start: int,
    reference: ReferenceImage | None,
) -> list[GenerationTask]:
    return [
        _image_task(
            start + offset,
            page.label,
            page.prompt,
            reference=reference,
            personalise=page.uses_reference,
        )
        for offset, page in enumerate(prompts)
    ]


def build_coloring_book_plan(request: ColoringBookRequest) -> GenerationPlan:
    """Cover followed by the eight activity pages, generated one after another."""
    cover = GenerationTask(
        position=0,
        prompt=build_cover_prompt(
            request.theme, request.name, age_level=request.age_level, cover=request.cover
        ),
        kind=TaskKind.IMAGE,
        label="Cover",
    )
    pages = build_coloring_page_prompts(
        request.theme,
        request.name,
        age_level=request.age_level,
        has_reference=request.reference_image is not None,
    )
    tasks = [cover, *_tasks_from_prompts(pages, start=1, reference=request.reference_image)]
    logger.debug(
        "Planned coloring book for %s: %d tasks, %d personalised.",
        request.name,
        len(tasks),
        personalised_count(pages),
    )
    return GenerationPlan(
        product=ProductKind.COLORING_BOOK,
        stages=(PlanStage(mode=ExecutionMode.SEQUENTIAL, tasks=tuple(tasks)),),
    )


def build_sticker_plan(request: StickerRequest) -> GenerationPlan:
    prompts = build_sticker_prompts(
        request.theme,
        count=request.count,
        has_reference=request.reference_image is not None,
    )
    tasks = _tasks_from_prompts(prompts, start=0, reference=request.reference_image)
    logger.debug(
        "Planned %d stickers for %r, %d personalised.",
        len(tasks),
        request.theme,
        personalised_count(prompts),
    )
    return GenerationPlan(
        product=ProductKind.STICKER_SET,
        stages=(PlanStage(mode=ExecutionMode.PARALLEL, tasks=tuple(tasks)),),
    )


def _moments_stage(count: int) -> PlanStage:
    def build(outputs: Sequence[str], start: int) -> list[GenerationTask]:
        narrative = outputs[NARRATIVE_POSITION]
        return [
            GenerationTask(
                position=start,
                prompt=build_moments_prompt(narrative, count=count),
                kind=TaskKind.TEXT,
                label="Key Moments",
            )
        ]

    return PlanStage(mode=ExecutionMode.SEQUENTIAL, builder=build, size=1)


def _illustration_stage(characters: StoryCharacters, count: int) -> PlanStage:
    def build(outputs: Sequence[str], start: int) -> list[GenerationTask]:
        moments = parse_moments(
            outputs[MOMENTS_POSITION],
            narrative=outputs[NARRATIVE_POSITION],
            count=count,
        )
        return [
            GenerationTask(
                position=start + index,
                prompt=build_illustration_prompt(moment, characters),
                kind=TaskKind.IMAGE,
                label=label,
            )
            for index, (moment, label) in enumerate(zip(moments, illustration_labels(count)))
        ]

    return PlanStage(mode=ExecutionMode.PARALLEL, builder=build, size=count)


def build_storybook_plan(
    request: StorybookRequest,
    *,
    illustration_count: int = DEFAULT_ILLUSTRATION_COUNT,
) -> GenerationPlan:
    """
    Narrative and cover in parallel, then the key moments of the finished
    narrative, then one illustration per moment.
    """
    story = get_story(request.story)
    characters = request.characters
    reference = request.reference_image

    narrative = GenerationTask(
        position=NARRATIVE_POSITION,
        prompt=build_personalisation_prompt(story, characters),
        kind=TaskKind.TEXT,
        label="Story",
    )
    cover = _image_task(
        STORY_COVER_POSITION,
        "Cover",
        build_storybook_cover_prompt(
            story.title, characters, has_reference=reference is not None
        ),
        reference=reference,
        personalise=True,
    )
    return GenerationPlan(
        product=ProductKind.STORYBOOK,
        stages=(
            PlanStage(mode=ExecutionMode.PARALLEL, tasks=(narrative, cover)),
            _moments_stage(illustration_count),
            _illustration_stage(characters, illustration_count),
        ),
    )


def build_plan(request: GenerationRequest) -> GenerationPlan:
    if isinstance(request, ColoringBookRequest):
        return build_coloring_book_plan(request)
    if isinstance(request, StickerRequest):
        return build_sticker_plan(request)
    if isinstance(request, StorybookRequest):
        return build_storybook_plan(request)
    raise InvalidRequest(f"Unsupported request type: {type(request).__name__}.")
