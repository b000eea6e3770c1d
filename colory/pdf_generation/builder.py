"""
Render generation bundles into printable PDFs.
"""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY
from reportlab.lib.pagesizes import A4, LETTER
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import inch
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas
from reportlab.platypus import Flowable, Frame, Paragraph

from colory.common.media import decode_data_uri
from colory.pipeline.models import ColoringBookBundle, StickerSetBundle, StorybookBundle
from colory.story_generation import split_paragraphs

ILLUSTRATION_AFTER_PARAGRAPHS: tuple[int, ...] = (0, 2, 4)

PAGE_SIZES = {
    "a4": A4,
    "letter": LETTER,
    "square": (8 * inch, 8 * inch),
}


@dataclass(frozen=True)
class PageLayoutConfig:
    text_background: colors.Color
    image_background: colors.Color
    cover_background: colors.Color
    accent_color: colors.Color
    text_color: colors.Color
    caption_color: colors.Color


DEFAULT_LAYOUT = PageLayoutConfig(
    text_background=colors.HexColor("#F5F1FF"),
    image_background=colors.HexColor("#E8F5FF"),
    cover_background=colors.HexColor("#6C4FD3"),
    accent_color=colors.HexColor("#FFB347"),
    text_color=colors.HexColor("#2F2A40"),
    caption_color=colors.HexColor("#4B506D"),
)


def image_reader(uri: str) -> ImageReader:
    data, _ = decode_data_uri(uri)
    return ImageReader(BytesIO(data))


def draw_fitted_image(
    pdf: canvas.Canvas,
    image: ImageReader,
    x: float,
    y: float,
    box_width: float,
    box_height: float,
) -> None:
    """Draw ``image`` centred in the box, scaled to fit without distortion."""
    img_width, img_height = image.getSize()
    scale = min(box_width / img_width, box_height / img_height)
    draw_width = img_width * scale
    draw_height = img_height * scale
    pdf.drawImage(
        image,
        x + (box_width - draw_width) / 2,
        y + (box_height - draw_height) / 2,
        draw_width,
        draw_height,
        preserveAspectRatio=True,
        mask="auto",
    )


class ColoringBookPDFBuilder:
    """
    One image per page: the cover first, then the activity pages in order.
    """

    def __init__(
        self,
        *,
        page_size: tuple[float, float] = PAGE_SIZES["letter"],
        margin: float = 0.5 * inch,
    ) -> None:
        self.page_size = page_size
        self.margin = margin

    def build(self, bundle: ColoringBookBundle, output_path: Path | str) -> Path:
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        pdf = canvas.Canvas(str(output_file), pagesize=self.page_size)
        pdf.setTitle(f"Coloring Book for {bundle.name}")
        width, height = self.page_size

        for uri in (bundle.cover_image, *bundle.pages):
            draw_fitted_image(
                pdf,
                image_reader(uri),
                self.margin,
                self.margin,
                width - 2 * self.margin,
                height - 2 * self.margin,
            )
            pdf.showPage()

        pdf.save()
        return output_file


class StickerSheetPDFBuilder:
    """
    Lay stickers out on a grid, starting a new sheet whenever the grid is full.
    """

    def __init__(
        self,
        *,
        page_size: tuple[float, float] = PAGE_SIZES["letter"],
        margin: float = 0.5 * inch,
        columns: int = 2,
        rows: int = 3,
        gutter: float = 0.25 * inch,
    ) -> None:
        self.page_size = page_size
        self.margin = margin
        self.columns = columns
        self.rows = rows
        self.gutter = gutter

    @property
    def per_page(self) -> int:
        return self.columns * self.rows

    def build(self, bundle: StickerSetBundle, output_path: Path | str) -> Path:
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        pdf = canvas.Canvas(str(output_file), pagesize=self.page_size)
        pdf.setTitle(f"{bundle.theme} Stickers")
        width, height = self.page_size
        cell_width = (width - 2 * self.margin) / self.columns
        cell_height = (height - 2 * self.margin) / self.rows

        for index, uri in enumerate(bundle.stickers):
            slot = index % self.per_page
            if index and slot == 0:
                pdf.showPage()
            row, column = divmod(slot, self.columns)
            x = self.margin + column * cell_width
            # Rows fill from the top of the sheet.
            y = height - self.margin - (row + 1) * cell_height
            draw_fitted_image(
                pdf,
                image_reader(uri),
                x + self.gutter / 2,
                y + self.gutter / 2,
                cell_width - self.gutter,
                cell_height - self.gutter,
            )

        pdf.showPage()
        pdf.save()
        return output_file


class _FittedImage(Flowable):
    def __init__(self, uri: str) -> None:
        super().__init__()
        self._image = image_reader(uri)

    def wrap(self, availWidth: float, availHeight: float) -> tuple[float, float]:
        self.width = availWidth
        self.height = availHeight
        return availWidth, availHeight

    def draw(self) -> None:
        draw_fitted_image(self.canv, self._image, 0, 0, self.width, self.height)


def illustration_slots(paragraph_count: int, illustration_count: int) -> list[int]:
    """
    Paragraph index after which each illustration is placed.

    Positions past the end of a short narrative collapse onto its last paragraph.
    """
    if paragraph_count < 1:
        return []
    last = paragraph_count - 1
    slots: list[int] = []
    for index in range(illustration_count):
        if index < len(ILLUSTRATION_AFTER_PARAGRAPHS):
            slot = ILLUSTRATION_AFTER_PARAGRAPHS[index]
        else:
            slot = ILLUSTRATION_AFTER_PARAGRAPHS[-1] + 2 * (index - len(ILLUSTRATION_AFTER_PARAGRAPHS) + 1)
        slots.append(min(slot, last))
    return slots


class StorybookPDFBuilder:
    """
    Render a personalised storybook on square pages.

    The builder creates:
      * A cover page with the title, a "Starring" line and the cover art.
      * Story pages whose paragraphs flow across as many pages as they need,
        interrupted by full-page illustrations after fixed paragraphs.
    """

    def __init__(
        self,
        *,
        page_size: tuple[float, float] = PAGE_SIZES["square"],
        margin: float = 0.5 * inch,
        layout: PageLayoutConfig = DEFAULT_LAYOUT,
    ) -> None:
        self.page_size = page_size
        self.margin = margin
        self.layout = layout

        self.body_font, self.body_bold_font = self._configure_story_fonts()

        self.title_style = ParagraphStyle(
            name="StoryTitle",
            fontName=self.body_bold_font,
            fontSize=28,
            leading=32,
            alignment=TA_CENTER,
            textColor=colors.white,
            spaceAfter=10,
        )
        self.subtitle_style = ParagraphStyle(
            name="StorySubtitle",
            fontName=self.body_font,
            fontSize=16,
            leading=20,
            alignment=TA_CENTER,
            textColor=colors.white,
        )
        self.body_style = ParagraphStyle(
            name="Body",
            fontName=self.body_font,
            fontSize=16,
            leading=24,
            alignment=TA_JUSTIFY,
            textColor=self.layout.text_color,
            spaceAfter=14,
        )
        self.footer_style = ParagraphStyle(
            name="Footer",
            fontName="Helvetica-Oblique",
            fontSize=10,
            leading=12,
            alignment=TA_CENTER,
            textColor=self.layout.caption_color,
        )

    def build(self, bundle: StorybookBundle, output_path: Path | str) -> Path:
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        pdf = canvas.Canvas(str(output_file), pagesize=self.page_size)
        pdf.setTitle(bundle.title)
        width, height = self.page_size

        self._draw_cover_page(pdf, bundle, width, height)

        paragraphs = split_paragraphs(bundle.narrative)
        slots = illustration_slots(len(paragraphs), len(bundle.illustrations))
        page_number = 1
        segment: list[str] = []
        for index, paragraph in enumerate(paragraphs):
            segment.append(paragraph)
            placed_here = [
                uri for uri, slot in zip(bundle.illustrations, slots) if slot == index
            ]
            if placed_here or index == len(paragraphs) - 1:
                page_number = self._draw_text_pages(pdf, bundle, segment, page_number, width, height)
                segment = []
            for uri in placed_here:
                self._draw_image_page(pdf, uri, width, height)

        pdf.save()
        return output_file

    # ------------------------------------------------------------------ cover rendering

    def _draw_cover_page(
        self,
        pdf: canvas.Canvas,
        bundle: StorybookBundle,
        width: float,
        height: float,
    ) -> None:
        pdf.setFillColor(self.layout.cover_background)
        pdf.rect(0, 0, width, height, stroke=0, fill=1)

        heading_height = 1.5 * inch
        heading = Frame(
            self.margin,
            height - self.margin - heading_height,
            width - 2 * self.margin,
            heading_height,
            showBoundary=0,
        )
        intro = [Paragraph(paragraph_markup(bundle.title), self.title_style)]
        starring = starring_line(
            [
                bundle.characters.character1_name,
                bundle.characters.character2_name,
                bundle.characters.character3_name,
            ]
        )
        if starring:
            intro.append(Paragraph(paragraph_markup(starring), self.subtitle_style))
        heading.addFromList(intro, pdf)

        draw_fitted_image(
            pdf,
            image_reader(bundle.cover_image),
            self.margin,
            self.margin,
            width - 2 * self.margin,
            height - 2 * self.margin - heading_height,
        )
        pdf.showPage()

    # ------------------------------------------------------------------ text pages

    def _draw_text_pages(
        self,
        pdf: canvas.Canvas,
        bundle: StorybookBundle,
        paragraphs: Sequence[str],
        page_number: int,
        width: float,
        height: float,
    ) -> int:
        pending: list[Flowable] = [
            Paragraph(paragraph_markup(paragraph), self.body_style)
            for paragraph in paragraphs
        ]
        while pending:
            pdf.setFillColor(self.layout.text_background)
            pdf.rect(0, 0, width, height, stroke=0, fill=1)

            frame = Frame(
                self.margin,
                self.margin,
                width - 2 * self.margin,
                height - 2 * self.margin,
                showBoundary=0,
            )
            if not self._fill_frame(frame, pending, pdf):
                raise ValueError("A story paragraph does not fit on a page.")

            self._draw_footer(pdf, f"Page {page_number} \u2022 {bundle.title}", width)
            pdf.showPage()
            page_number += 1
        return page_number

    @staticmethod
    def _fill_frame(frame: Frame, pending: list[Flowable], pdf: canvas.Canvas) -> int:
        placed = 0
        while pending:
            if frame.add(pending[0], pdf):
                pending.pop(0)
                placed += 1
                continue
            pieces = frame.split(pending[0], pdf)
            if len(pieces) < 2:
                break
            pending[0:1] = pieces
        return placed

    # ------------------------------------------------------------------ image pages

    def _draw_image_page(self, pdf: canvas.Canvas, uri: str, width: float, height: float) -> None:
        pdf.setFillColor(self.layout.image_background)
        pdf.rect(0, 0, width, height, stroke=0, fill=1)

        frame = Frame(
            self.margin,
            self.margin,
            width - 2 * self.margin,
            height - 2 * self.margin,
            showBoundary=0,
            leftPadding=0,
            rightPadding=0,
            topPadding=0,
            bottomPadding=0,
        )
        frame.addFromList([_FittedImage(uri)], pdf)
        pdf.showPage()

    # ------------------------------------------------------------------ helpers

    def _draw_footer(self, pdf: canvas.Canvas, text: str, width: float) -> None:
        footer_frame = Frame(
            self.margin,
            6,
            width - 2 * self.margin,
            24,
            showBoundary=0,
        )
        footer_frame.addFromList([Paragraph(text, self.footer_style)], pdf)

    def _configure_story_fonts(self) -> tuple[str, str]:
        playful_options = [
            (
                "ComicSansMS",
                "ComicSansMS-Bold",
                ["Comic Sans MS.ttf", "ComicSansMS.ttf"],
                ["Comic Sans MS Bold.ttf", "ComicSansMS-Bold.ttf"],
            ),
            (
                "ChalkboardSE-Light",
                "ChalkboardSE-Bold",
                ["ChalkboardSE-Light.ttf", "ChalkboardSE.ttc"],
                ["ChalkboardSE-Bold.ttf"],
            ),
        ]

        search_roots = [
            Path("/Library/Fonts"),
            Path("/System/Library/Fonts"),
            Path.home() / "Library" / "Fonts",
            Path("C:/Windows/Fonts"),
            Path("/usr/share/fonts"),
            Path("/usr/local/share/fonts"),
        ]

        for regular_name, bold_name, regular_candidates, bold_candidates in playful_options:
            regular_ready = self._register_font_if_available(regular_name, regular_candidates, search_roots)
            bold_ready = self._register_font_if_available(bold_name, bold_candidates, search_roots)
            if regular_ready and bold_ready:
                return regular_name, bold_name

        return "Helvetica", "Helvetica-Bold"

    @staticmethod
    def _register_font_if_available(
        font_name: str,
        candidate_filenames: Sequence[str],
        search_roots: Sequence[Path],
    ) -> bool:
        if font_name in pdfmetrics.getRegisteredFontNames():
            return True

        for root in search_roots:
            for candidate in candidate_filenames:
                font_path = root / candidate
                if font_path.exists():
                    try:
                        pdfmetrics.registerFont(TTFont(font_name, str(font_path)))
                        return True
                    except Exception:
                        continue
        return False


def paragraph_markup(text: str) -> str:
    """Escape user and model text for ReportLab markup, keeping line breaks."""
    return escape(text).replace("\n", "<br/>")


def starring_line(names: Sequence[str]) -> str:
    cast = [name.strip() for name in names if name and name.strip()]
    if not cast:
        return ""
    if len(cast) == 1:
        return f"Starring {cast[0]}"
    return f"Starring {', '.join(cast[:-1])} and {cast[-1]}"
