"""
Turns finished bundles into downloadable files.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from colory.common.errors import DocumentAssemblyFailed
from colory.pipeline.models import (
    Bundle,
    ColoringBookBundle,
    StickerSetBundle,
    StorybookBundle,
)

from .archive import build_sticker_archive
from .builder import ColoringBookPDFBuilder, StickerSheetPDFBuilder, StorybookPDFBuilder

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
ZIP_MEDIA_TYPE = "application/zip"

_WHITESPACE = re.compile(r"\s+")
_UNSAFE_CHARACTERS = re.compile(r'[\\/:*?"<>|]+')


@dataclass(frozen=True)
class Artifact:
    path: Path
    media_type: str

    @property
    def filename(self) -> str:
        return self.path.name


def artifact_filename(prefix: str, value: str, suffix: str) -> str:
    """
    Build ``<prefix>-<value><suffix>`` with runs of whitespace collapsed to ``-``.
    """
    cleaned = _WHITESPACE.sub("-", _UNSAFE_CHARACTERS.sub("", value).strip())
    return f"{prefix}-{cleaned or 'Untitled'}{suffix}"


def bundle_filename(bundle: Bundle, suffix: str = ".pdf") -> str:
    if isinstance(bundle, ColoringBookBundle):
        return artifact_filename("Coloring-Book", bundle.name, suffix)
    if isinstance(bundle, StickerSetBundle):
        return artifact_filename("Stickers", bundle.theme, suffix)
    return artifact_filename("Storybook", bundle.title, suffix)


class DocumentAssembler:
    """
    Write bundles into ``output_dir`` as PDFs (and, for stickers, zip archives).

    A failure leaves the bundle untouched so assembly can be retried.
    """

    def __init__(
        self,
        output_dir: Path | str,
        *,
        coloring_book_builder: ColoringBookPDFBuilder | None = None,
        sticker_sheet_builder: StickerSheetPDFBuilder | None = None,
        storybook_builder: StorybookPDFBuilder | None = None,
    ) -> None:
        self.output_dir = Path(output_dir)
        self._coloring_book_builder = coloring_book_builder or ColoringBookPDFBuilder()
        self._sticker_sheet_builder = sticker_sheet_builder or StickerSheetPDFBuilder()
        self._storybook_builder = storybook_builder

    @property
    def storybook_builder(self) -> StorybookPDFBuilder:
        # Font discovery walks the system font folders, so defer it until needed.
        if self._storybook_builder is None:
            self._storybook_builder = StorybookPDFBuilder()
        return self._storybook_builder

    def assemble(self, bundle: Bundle) -> Artifact:
        output_path = self.output_dir / bundle_filename(bundle)
        try:
            if isinstance(bundle, ColoringBookBundle):
                self._coloring_book_builder.build(bundle, output_path)
            elif isinstance(bundle, StickerSetBundle):
                self._sticker_sheet_builder.build(bundle, output_path)
            elif isinstance(bundle, StorybookBundle):
                self.storybook_builder.build(bundle, output_path)
            else:
                raise TypeError(f"Unsupported bundle type: {type(bundle).__name__}")
        except Exception as exc:
            raise DocumentAssemblyFailed(
                f"Could not create {output_path.name}: {exc}"
            ) from exc

        logger.info("Wrote %s", output_path)
        return Artifact(path=output_path, media_type=PDF_MEDIA_TYPE)

    def assemble_archive(self, bundle: StickerSetBundle) -> Artifact:
        if not isinstance(bundle, StickerSetBundle):
            raise DocumentAssemblyFailed("Only sticker sets can be downloaded as a zip archive.")

        output_path = self.output_dir / bundle_filename(bundle, ".zip")
        try:
            build_sticker_archive(bundle.stickers, output_path)
        except Exception as exc:
            raise DocumentAssemblyFailed(
                f"Could not create {output_path.name}: {exc}"
            ) from exc
        return Artifact(path=output_path, media_type=ZIP_MEDIA_TYPE)
