"""
Tests for tasks, plans and bundles.
"""

import pytest

from colory.pipeline import (
    ColoringBookBundle,
    ExecutionMode,
    GenerationPlan,
    GenerationResult,
    GenerationTask,
    PlanStage,
    ProductKind,
    StickerSetBundle,
    StorybookBundle,
    TaskKind,
    bundle_from_dict,
    bundle_from_yaml,
    bundle_to_yaml,
)
from colory.story_generation import StoryCharacters

from conftest import NARRATIVE, PNG_URI


def image_task(position, **overrides):
    values = {"position": position, "prompt": f"prompt {position}", "kind": TaskKind.IMAGE, "label": "Page"}
    values.update(overrides)
    return GenerationTask(**values)


class TestGenerationTask:
    def test_reference_requires_matching_kind(self, photo):
        with pytest.raises(ValueError):
            image_task(0, reference_image=photo)
        with pytest.raises(ValueError):
            image_task(0, kind=TaskKind.IMAGE_WITH_REFERENCE)

    def test_reference_task(self, photo):
        task = image_task(0, kind=TaskKind.IMAGE_WITH_REFERENCE, reference_image=photo)

        assert task.uses_reference
        assert "size=" in repr(photo)

    def test_empty_prompt_rejected(self):
        with pytest.raises(ValueError):
            image_task(0, prompt="  ")


class TestPlanStage:
    def test_static_stage_size(self):
        stage = PlanStage(mode=ExecutionMode.SEQUENTIAL, tasks=(image_task(0), image_task(1)))

        assert stage.size == 2
        assert not stage.deferred

    def test_deferred_stage_needs_size(self):
        with pytest.raises(ValueError):
            PlanStage(mode=ExecutionMode.PARALLEL, builder=lambda outputs, start: [])

    def test_deferred_stage_checks_positions(self):
        stage = PlanStage(
            mode=ExecutionMode.PARALLEL,
            builder=lambda outputs, start: [image_task(start + 1)],
            size=1,
        )

        with pytest.raises(ValueError):
            stage.resolve(["out"], 1)

    def test_plan_rejects_gaps(self):
        stage = PlanStage(mode=ExecutionMode.SEQUENTIAL, tasks=(image_task(0), image_task(2)))

        with pytest.raises(ValueError):
            GenerationPlan(product=ProductKind.STICKER_SET, stages=(stage,))

    def test_plan_counts_deferred_tasks(self):
        plan = GenerationPlan(
            product=ProductKind.STORYBOOK,
            stages=(
                PlanStage(mode=ExecutionMode.PARALLEL, tasks=(image_task(0),)),
                PlanStage(
                    mode=ExecutionMode.PARALLEL,
                    builder=lambda outputs, start: [image_task(start), image_task(start + 1)],
                    size=2,
                ),
            ),
        )

        assert plan.total_tasks == 3
        assert len(plan.tasks) == 1


def test_result_requires_one_output_per_task():
    with pytest.raises(ValueError):
        GenerationResult(tasks=(image_task(0),), outputs=())


class TestBundles:
    def test_images_must_be_data_uris(self):
        with pytest.raises(ValueError):
            StickerSetBundle(stickers=["https://example.com/a.png"], theme="Ocean")

    def test_storybook_needs_narrative(self):
        with pytest.raises(ValueError):
            StorybookBundle(
                story_key="cinderella",
                title="Cinderella's Magical Night",
                narrative=" ",
                cover_image=PNG_URI,
                illustrations=[PNG_URI],
                characters=StoryCharacters("Mia"),
            )

    def test_yaml_export_can_be_reloaded(self, tmp_path):
        bundle = StorybookBundle(
            story_key="cinderella",
            title="Cinderella's Magical Night",
            narrative=NARRATIVE,
            cover_image=PNG_URI,
            illustrations=[PNG_URI, PNG_URI, PNG_URI],
            characters=StoryCharacters("Mia", "Leo"),
        )
        path = tmp_path / "bundle.yaml"
        path.write_text(bundle_to_yaml(bundle), encoding="utf-8")

        assert bundle_from_yaml(path) == bundle

    def test_from_dict_dispatches_on_product(self):
        bundle = bundle_from_dict(
            {
                "product": "coloring_book",
                "theme": "Robots",
                "name": "Sam",
                "cover_image": PNG_URI,
                "pages": [PNG_URI] * 8,
            }
        )

        assert isinstance(bundle, ColoringBookBundle)
        assert len(bundle.pages) == 8

    def test_from_dict_rejects_unknown_product(self):
        with pytest.raises(ValueError):
            bundle_from_dict({"product": "poster"})

    def test_from_dict_rejects_missing_fields(self):
        with pytest.raises(ValueError):
            bundle_from_dict({"product": "sticker_set", "theme": "Ocean"})
