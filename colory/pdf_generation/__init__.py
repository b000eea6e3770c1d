"""
Document assembly: printable PDFs and sticker archives.
"""

from .archive import build_sticker_archive, sticker_filename
from .assembler import Artifact, DocumentAssembler, artifact_filename, bundle_filename
from .builder import (
    ColoringBookPDFBuilder,
    StickerSheetPDFBuilder,
    StorybookPDFBuilder,
    illustration_slots,
    paragraph_markup,
    starring_line,
)

__all__ = [
    "Artifact",
    "ColoringBookPDFBuilder",
    "DocumentAssembler",
    "StickerSheetPDFBuilder",
    "StorybookPDFBuilder",
    "artifact_filename",
    "build_sticker_archive",
    "bundle_filename",
    "illustration_slots",
    "paragraph_markup",
    "starring_line",
    "sticker_filename",
]
