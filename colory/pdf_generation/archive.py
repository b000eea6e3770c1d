"""
Zip archive of individual sticker images.
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Sequence

from colory.common.media import decode_data_uri

logger = logging.getLogger(__name__)


def sticker_filename(index: int) -> str:
    return f"sticker_{index + 1:02d}.png"


def build_sticker_archive(stickers: Sequence[str], output_path: Path | str) -> Path:
    """
    Write one PNG per sticker, named by position, into a deflated zip.
    """
    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    with zipfile.ZipFile(output_file, "w", zipfile.ZIP_DEFLATED) as zf:
        for index, uri in enumerate(stickers):
            data, _ = decode_data_uri(uri)
            zf.writestr(sticker_filename(index), data)

    logger.info("Created sticker archive with %d images at %s", len(stickers), output_file)
    return output_file
