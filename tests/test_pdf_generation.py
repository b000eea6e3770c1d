"""
Tests for PDF and archive assembly.
"""

import zipfile

import pytest

from colory.common.errors import DocumentAssemblyFailed
from colory.common.media import encode_data_uri
from colory.pdf_generation import (
    DocumentAssembler,
    artifact_filename,
    bundle_filename,
    illustration_slots,
    paragraph_markup,
    starring_line,
)
from colory.pdf_generation.assembler import PDF_MEDIA_TYPE, ZIP_MEDIA_TYPE
from colory.pipeline import ColoringBookBundle, StickerSetBundle, StorybookBundle
from colory.story_generation import StoryCharacters

from conftest import NARRATIVE, PNG_URI, TINY_PNG


@pytest.fixture
def coloring_book():
    return ColoringBookBundle(cover_image=PNG_URI, pages=[PNG_URI] * 8, theme="Space Dinosaurs", name="Mia Rose")


@pytest.fixture
def sticker_set():
    return StickerSetBundle(stickers=[PNG_URI] * 7, theme="Ocean Friends")


@pytest.fixture
def storybook():
    return StorybookBundle(
        story_key="cinderella",
        title="Cinderella's Magical Night",
        narrative=NARRATIVE,
        cover_image=PNG_URI,
        illustrations=[PNG_URI] * 3,
        characters=StoryCharacters("Mia", "Leo", "Grandma"),
    )


class TestFilenames:
    def test_whitespace_collapses_to_dashes(self):
        assert artifact_filename("Coloring-Book", "  Mia   Rose ", ".pdf") == "Coloring-Book-Mia-Rose.pdf"

    def test_unsafe_characters_removed(self):
        assert artifact_filename("Stickers", 'a/b:c?', ".zip") == "Stickers-abc.zip"

    def test_empty_value(self):
        assert artifact_filename("Stickers", " ? ", ".pdf") == "Stickers-Untitled.pdf"

    def test_bundle_filenames(self, coloring_book, sticker_set, storybook):
        assert bundle_filename(coloring_book) == "Coloring-Book-Mia-Rose.pdf"
        assert bundle_filename(sticker_set, ".zip") == "Stickers-Ocean-Friends.zip"
        assert bundle_filename(storybook) == "Storybook-Cinderella's-Magical-Night.pdf"


class TestStorybookLayoutHelpers:
    def test_default_slots(self):
        assert illustration_slots(6, 3) == [0, 2, 4]

    def test_short_narrative_clamps_slots(self):
        assert illustration_slots(2, 3) == [0, 1, 1]

    def test_no_paragraphs(self):
        assert illustration_slots(0, 3) == []

    @pytest.mark.parametrize(
        ("names", "expected"),
        [
            (["Mia"], "Starring Mia"),
            (["Mia", "", "Grandma"], "Starring Mia and Grandma"),
            (["Mia", "Leo", "Grandma"], "Starring Mia, Leo and Grandma"),
            (["", " "], ""),
        ],
    )
    def test_starring_line(self, names, expected):
        assert starring_line(names) == expected

    def test_paragraph_markup_escapes_text(self):
        assert paragraph_markup("Tom & Jerry <3\nThe end.") == "Tom &amp; Jerry &lt;3<br/>The end."


class TestDocumentAssembler:
    def test_coloring_book_pdf(self, tmp_path, coloring_book):
        artifact = DocumentAssembler(tmp_path).assemble(coloring_book)

        assert artifact.path == tmp_path / "Coloring-Book-Mia-Rose.pdf"
        assert artifact.media_type == PDF_MEDIA_TYPE
        assert artifact.path.read_bytes().startswith(b"%PDF")

    def test_sticker_sheet_pdf(self, tmp_path, sticker_set):
        artifact = DocumentAssembler(tmp_path).assemble(sticker_set)

        assert artifact.filename == "Stickers-Ocean-Friends.pdf"
        assert artifact.path.read_bytes().startswith(b"%PDF")

    def test_storybook_pdf(self, tmp_path, storybook):
        artifact = DocumentAssembler(tmp_path).assemble(storybook)

        assert artifact.path.read_bytes().startswith(b"%PDF")

    def test_storybook_with_markup_characters(self, tmp_path):
        """Should render names and text that contain markup characters."""
        bundle = StorybookBundle(
            story_key="three_pigs",
            title="The Three Little Pigs & Me",
            narrative="Sam <the brave> & friends built a house.\n\nThe wolf huffed & puffed.",
            cover_image=PNG_URI,
            illustrations=[PNG_URI],
            characters=StoryCharacters("Sam <3", "Ann & Bo"),
        )

        artifact = DocumentAssembler(tmp_path).assemble(bundle)

        assert artifact.path.read_bytes().startswith(b"%PDF")

    def test_sticker_archive(self, tmp_path, sticker_set):
        artifact = DocumentAssembler(tmp_path).assemble_archive(sticker_set)

        assert artifact.media_type == ZIP_MEDIA_TYPE
        with zipfile.ZipFile(artifact.path) as archive:
            assert archive.namelist() == [f"sticker_{index:02d}.png" for index in range(1, 8)]
            assert archive.read("sticker_01.png") == TINY_PNG

    def test_archive_only_for_stickers(self, tmp_path, coloring_book):
        with pytest.raises(DocumentAssemblyFailed):
            DocumentAssembler(tmp_path).assemble_archive(coloring_book)

    def test_unreadable_image_fails_assembly(self, tmp_path):
        """Should report an assembly failure and keep the bundle intact."""
        broken = encode_data_uri(b"definitely not a png", "image/png")
        bundle = StickerSetBundle(stickers=[broken], theme="Broken")

        with pytest.raises(DocumentAssemblyFailed):
            DocumentAssembler(tmp_path).assemble(bundle)
        assert bundle.stickers == (broken,)
