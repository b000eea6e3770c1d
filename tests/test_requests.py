"""
Tests for request validation.
"""

import pytest

from colory.ai_generation.prompting import AgeLevel
from colory.common.errors import InvalidRequest
from colory.pipeline import ColoringBookRequest, StickerRequest, StorybookRequest


class TestColoringBookRequest:
    def test_strips_fields(self):
        request = ColoringBookRequest(theme="  Space Dinosaurs ", name=" Mia ")

        assert request.theme == "Space Dinosaurs"
        assert request.name == "Mia"
        assert request.age_level is AgeLevel.KIDS

    def test_accepts_age_level_value(self):
        request = ColoringBookRequest(theme="Cats", name="Zoe", age_level="preschool")

        assert request.age_level is AgeLevel.PRESCHOOL

    @pytest.mark.parametrize("field", ["theme", "name"])
    def test_blank_required_field(self, field):
        values = {"theme": "Cats", "name": "Zoe", field: "   "}

        with pytest.raises(InvalidRequest, match=field):
            ColoringBookRequest(**values)

    def test_unknown_age_level(self):
        with pytest.raises(InvalidRequest, match="age level"):
            ColoringBookRequest(theme="Cats", name="Zoe", age_level="teens")


class TestStickerRequest:
    def test_defaults_to_six(self):
        assert StickerRequest(theme="Ocean").count == 6

    @pytest.mark.parametrize("count", [0, -3])
    def test_count_must_be_positive(self, count):
        with pytest.raises(InvalidRequest):
            StickerRequest(theme="Ocean", count=count)

    def test_blank_theme(self):
        with pytest.raises(InvalidRequest):
            StickerRequest(theme="")


class TestStorybookRequest:
    def test_optional_names_are_normalised(self):
        request = StorybookRequest(
            story="goldilocks", character1_name=" Mia ", character2_name="  ", character3_name=None
        )

        assert request.characters.as_dict() == {
            "character1_name": "Mia",
            "character2_name": "",
            "character3_name": "",
        }

    def test_unknown_story(self):
        with pytest.raises(InvalidRequest, match="peter_pan"):
            StorybookRequest(story="peter_pan", character1_name="Mia")

    def test_hero_name_required(self):
        with pytest.raises(InvalidRequest):
            StorybookRequest(story="cinderella", character1_name=" ")
