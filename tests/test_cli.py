"""
Tests for the command-line front-end.
"""

import pytest

from colory import cli
from colory.common.errors import DocumentAssemblyFailed, InvalidRequest
from colory.pdf_generation import DocumentAssembler
from colory.pipeline import (
    ColoringBookRequest,
    ColoryStudio,
    GenerationOrchestrator,
    StickerRequest,
    StickerSetBundle,
    StorybookRequest,
    bundle_from_yaml,
    save_bundle,
)

from conftest import PNG_URI, TINY_PNG, ScriptedAdapter


class TestParser:
    def test_coloring_book_request(self):
        args = cli.build_parser().parse_args(
            ["coloring-book", "--theme", "Space Dinosaurs", "--name", "Mia", "--dedication", "Love, Dad"]
        )
        request = cli.build_request(args)

        assert isinstance(request, ColoringBookRequest)
        assert request.theme == "Space Dinosaurs"
        assert request.cover.dedication == "Love, Dad"
        assert request.reference_image is None

    def test_sticker_request_with_photo(self, tmp_path):
        photo_path = tmp_path / "kid.png"
        photo_path.write_bytes(TINY_PNG)
        args = cli.build_parser().parse_args(
            ["stickers", "--theme", "Ocean", "--count", "4", "--photo", str(photo_path)]
        )
        request = cli.build_request(args)

        assert isinstance(request, StickerRequest)
        assert request.count == 4
        assert request.reference_image.mime_type == "image/png"

    def test_storybook_request(self):
        args = cli.build_parser().parse_args(
            ["storybook", "--story", "three_pigs", "--character1", "Sam"]
        )
        request = cli.build_request(args)

        assert isinstance(request, StorybookRequest)
        assert request.characters.character1_name == "Sam"

    def test_unknown_story_rejected(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["storybook", "--story", "peter_pan", "--character1", "Sam"])

    def test_missing_photo(self, tmp_path):
        with pytest.raises(InvalidRequest):
            cli.load_photo(str(tmp_path / "missing.jpg"))


class TestMain:
    def test_render_saved_bundle(self, tmp_path):
        bundle_path = save_bundle(
            StickerSetBundle(stickers=[PNG_URI] * 3, theme="Ocean"), tmp_path / "stickers.yaml"
        )
        output_dir = tmp_path / "out"

        exit_code = cli.main(
            ["render", "--bundle", str(bundle_path), "--output-dir", str(output_dir), "--archive"]
        )

        assert exit_code == 0
        assert (output_dir / "Stickers-Ocean.pdf").exists()
        assert (output_dir / "Stickers-Ocean.zip").exists()

    def test_render_missing_bundle_reports_error(self, tmp_path, capsys):
        exit_code = cli.main(["render", "--bundle", str(tmp_path / "nope.yaml")])

        assert exit_code == 1
        assert "Please check your request" in capsys.readouterr().out

    def test_generation_without_key_reports_error(self, clean_env, tmp_path, capsys):
        exit_code = cli.main(
            ["coloring-book", "--theme", "Cats", "--name", "Zoe", "--output-dir", str(tmp_path)]
        )

        assert exit_code == 1
        assert "GEMINI_API_KEY" in capsys.readouterr().out

    def test_saved_bundle_survives_failed_download(self, tmp_path, monkeypatch, settings, capsys):
        """Should write the bundle YAML even when the PDF cannot be created."""
        adapter = ScriptedAdapter()

        class BrokenAssembler(DocumentAssembler):
            def assemble(self, bundle):
                raise DocumentAssemblyFailed("disk full")

        def make_studio(**kwargs):
            return ColoryStudio(
                settings=settings,
                adapter=adapter,
                orchestrator=GenerationOrchestrator(adapter, cooldown_seconds=0),
                assembler=BrokenAssembler(kwargs["output_dir"]),
            )

        monkeypatch.setattr(cli, "ColoryStudio", make_studio)

        exit_code = cli.main(
            [
                "stickers",
                "--theme",
                "Ocean",
                "--count",
                "2",
                "--output-dir",
                str(tmp_path),
                "--save-bundle",
            ]
        )

        assert exit_code == 1
        assert "creating the download" in capsys.readouterr().out
        saved = bundle_from_yaml(tmp_path / "Stickers-Ocean.yaml")
        assert len(saved.stickers) == 2
