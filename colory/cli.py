"""
Command-line front-end for Colory.

Usage:
    colory coloring-book --theme "space dinosaurs" --name Mia --photo mia.jpg
    colory stickers --theme "ocean friends" --count 6 --archive
    colory storybook --story cinderella --character1 Mia --character2 Grandma
    colory render --bundle output/Coloring-Book-Mia.yaml
    colory chat
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Sequence

from tqdm.auto import tqdm

from colory.ai_generation.prompting import COVER_FONT_STYLES, AgeLevel, CoverOptions
from colory.chat import ChatSessionAdapter
from colory.common.config import StudioSettings
from colory.common.errors import ColoryError, InvalidRequest, user_message
from colory.common.media import ReferenceImage
from colory.pdf_generation import DocumentAssembler, bundle_filename
from colory.pipeline import (
    ColoringBookRequest,
    ColoryStudio,
    Delivery,
    GenerationRequest,
    ProgressEvent,
    ProgressKind,
    StickerRequest,
    StorybookRequest,
    bundle_from_yaml,
    save_bundle,
)
from colory.story_generation import story_titles

logger = logging.getLogger(__name__)

_PRODUCT_NAMES = {
    "coloring-book": "your coloring book",
    "stickers": "your stickers",
    "storybook": "your storybook",
    "render": "your download",
    "chat": "a reply",
}


class ProgressTracker:
    """
    Mirrors orchestrator progress events onto a tqdm bar.
    """

    def __init__(self, description: str) -> None:
        self._bar: tqdm | None = tqdm(total=100, desc=description, unit="%")

    def __call__(self, event: ProgressEvent) -> None:
        if self._bar is None:
            return
        if event.percent > self._bar.n:
            self._bar.update(event.percent - self._bar.n)
        if event.kind is ProgressKind.COOLDOWN:
            self._bar.set_postfix_str(event.message)
        else:
            self._bar.set_postfix_str("")
            self._bar.set_description(event.message)
        if event.kind is ProgressKind.COMPLETE:
            self.close()

    def close(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="colory",
        description="Generate personalised coloring books, sticker sets and storybooks.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    output_options = argparse.ArgumentParser(add_help=False)
    output_options.add_argument(
        "--output-dir",
        default="output",
        help="Directory for generated files (default: output).",
    )
    output_options.add_argument(
        "--save-bundle",
        action="store_true",
        help="Also save the generated content as YAML so it can be re-rendered later.",
    )
    output_options.add_argument(
        "--photo",
        default=None,
        help="Optional photo used to draw the child into the pictures.",
    )

    coloring = subparsers.add_parser(
        "coloring-book", parents=[output_options], help="Create a coloring book PDF."
    )
    coloring.add_argument("--theme", required=True, help='Book theme, e.g. "space dinosaurs".')
    coloring.add_argument("--name", required=True, help="Name of the child the book is made for.")
    coloring.add_argument(
        "--age-level",
        choices=[level.value for level in AgeLevel],
        default=AgeLevel.KIDS.value,
        help="Line-art complexity (default: kids).",
    )
    coloring.add_argument(
        "--cover-template",
        choices=["illustrated", "bold", "soft"],
        default="illustrated",
    )
    coloring.add_argument("--cover-color", default="#8B5CF6", help="Dominant title color.")
    coloring.add_argument(
        "--cover-font", choices=sorted(COVER_FONT_STYLES), default="playful"
    )
    coloring.add_argument("--dedication", default="", help="Optional dedication line.")

    stickers = subparsers.add_parser(
        "stickers", parents=[output_options], help="Create a printable sticker sheet."
    )
    stickers.add_argument("--theme", required=True, help='Sticker theme, e.g. "ocean friends".')
    stickers.add_argument("--count", type=int, default=6, help="Number of stickers (default: 6).")
    stickers.add_argument(
        "--archive",
        action="store_true",
        help="Also write a zip with one PNG per sticker.",
    )

    storybook = subparsers.add_parser(
        "storybook", parents=[output_options], help="Create a personalised storybook PDF."
    )
    storybook.add_argument(
        "--story",
        required=True,
        choices=sorted(story_titles()),
        help="Classic tale to personalise.",
    )
    storybook.add_argument("--character1", required=True, help="Name of the hero.")
    storybook.add_argument("--character2", default="", help="Optional name of the second character.")
    storybook.add_argument("--character3", default="", help="Optional name of the helper.")

    render = subparsers.add_parser(
        "render", help="Render a saved bundle YAML into its PDF (and sticker zip)."
    )
    render.add_argument("--bundle", required=True, help="Path to a bundle YAML file.")
    render.add_argument("--output-dir", default="output")
    render.add_argument("--archive", action="store_true", help="Also write the sticker zip.")

    subparsers.add_parser("chat", help="Chat with Colory, the friendly robot helper.")
    return parser


def load_photo(path: str | None) -> ReferenceImage | None:
    if not path:
        return None
    try:
        return ReferenceImage.from_path(path)
    except (OSError, ValueError) as exc:
        raise InvalidRequest(f"Could not read photo {path}: {exc}") from exc


def build_request(args: argparse.Namespace) -> GenerationRequest:
    photo = load_photo(args.photo)
    if args.command == "coloring-book":
        return ColoringBookRequest(
            theme=args.theme,
            name=args.name,
            age_level=AgeLevel(args.age_level),
            cover=CoverOptions(
                template=args.cover_template,
                color=args.cover_color,
                font=args.cover_font,
                dedication=args.dedication,
            ),
            reference_image=photo,
        )
    if args.command == "stickers":
        return StickerRequest(theme=args.theme, reference_image=photo, count=args.count)
    return StorybookRequest(
        story=args.story,
        character1_name=args.character1,
        character2_name=args.character2,
        character3_name=args.character3,
        reference_image=photo,
    )


async def run_generation(args: argparse.Namespace) -> Delivery:
    request = build_request(args)
    studio = ColoryStudio(settings=StudioSettings.from_env(), output_dir=args.output_dir)
    tracker = ProgressTracker(f"Creating {_PRODUCT_NAMES[args.command]}")
    try:
        bundle = await studio.generate(request, progress_callback=tracker)
    finally:
        tracker.close()

    # Written before assembly; `colory render` can rebuild the download from it.
    if args.save_bundle:
        bundle_path = Path(args.output_dir) / bundle_filename(bundle, ".yaml")
        save_bundle(bundle, bundle_path)
        tqdm.write(f"Saved bundle to {bundle_path}")
    return await studio.deliver(bundle, with_archive=getattr(args, "archive", False))


def run_render(args: argparse.Namespace) -> Delivery:
    try:
        bundle = bundle_from_yaml(args.bundle)
    except (OSError, ValueError) as exc:
        raise InvalidRequest(f"Could not load bundle {args.bundle}: {exc}") from exc

    assembler = DocumentAssembler(args.output_dir)
    document = assembler.assemble(bundle)
    archive = None
    if args.archive:
        archive = assembler.assemble_archive(bundle)
    return Delivery(bundle=bundle, document=document, archive=archive)


async def run_chat() -> None:
    adapter = ChatSessionAdapter.from_settings(StudioSettings.from_env())
    session = adapter.open()
    print(f"Colory: {session.greeting}")
    while True:
        try:
            message = await asyncio.to_thread(input, "You: ")
        except EOFError:
            print()
            return
        if message.strip().lower() in {"quit", "exit"}:
            return
        if not message.strip():
            continue
        print(f"Colory: {await adapter.reply_or_apology(session, message)}")


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "chat":
            asyncio.run(run_chat())
            return 0
        if args.command == "render":
            delivery = run_render(args)
        else:
            delivery = asyncio.run(run_generation(args))
    except ColoryError as exc:
        logger.debug("Command %s failed.", args.command, exc_info=True)
        tqdm.write(user_message(exc, product=_PRODUCT_NAMES[args.command]))
        return 1
    except KeyboardInterrupt:
        tqdm.write("Cancelled.")
        return 130

    tqdm.write(f"Saved {delivery.document.path}")
    if delivery.archive is not None:
        tqdm.write(f"Saved {delivery.archive.path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
