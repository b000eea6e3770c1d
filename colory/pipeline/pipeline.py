"""
Orchestrates the full Colory flow from request to downloadable files.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from colory.ai_generation import ContentCapabilityAdapter
from colory.common.config import StudioSettings
from colory.common.errors import DocumentAssemblyFailed, InvalidRequest, PlanAborted
from colory.pdf_generation import Artifact, DocumentAssembler
from colory.story_generation import get_story

from .models import (
    Bundle,
    ColoringBookBundle,
    GenerationPlan,
    GenerationResult,
    StickerSetBundle,
    StorybookBundle,
    bundle_to_yaml,
)
from .orchestrator import CapabilityAdapter, GenerationOrchestrator
from .planner import (
    FIRST_ILLUSTRATION_POSITION,
    NARRATIVE_POSITION,
    STORY_COVER_POSITION,
    build_plan,
)
from .progress import ProgressListener
from .requests import ColoringBookRequest, GenerationRequest, StickerRequest, StorybookRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Delivery:
    """A finished product: the bundle plus the files written for it."""

    bundle: Bundle
    document: Artifact
    archive: Artifact | None = None


def build_bundle(request: GenerationRequest, result: GenerationResult) -> Bundle:
    """
    Map plan-ordered outputs onto the bundle for ``request``.
    """
    outputs = result.outputs
    if isinstance(request, ColoringBookRequest):
        return ColoringBookBundle(
            cover_image=outputs[0],
            pages=outputs[1:],
            theme=request.theme,
            name=request.name,
        )
    if isinstance(request, StickerRequest):
        return StickerSetBundle(stickers=outputs, theme=request.theme)
    if isinstance(request, StorybookRequest):
        story = get_story(request.story)
        return StorybookBundle(
            story_key=story.key,
            title=story.title,
            narrative=outputs[NARRATIVE_POSITION],
            cover_image=outputs[STORY_COVER_POSITION],
            illustrations=outputs[FIRST_ILLUSTRATION_POSITION:],
            characters=request.characters,
        )
    raise InvalidRequest(f"Unsupported request type: {type(request).__name__}.")


class ColoryStudio:
    """
    High-level coordinator that chains planning, generation and document assembly.
    """

    def __init__(
        self,
        *,
        settings: StudioSettings | None = None,
        adapter: CapabilityAdapter | None = None,
        orchestrator: GenerationOrchestrator | None = None,
        assembler: DocumentAssembler | None = None,
        output_dir: Path | str = "output",
    ) -> None:
        self._settings = settings or StudioSettings.from_env()
        self._adapter = adapter or ContentCapabilityAdapter.from_settings(self._settings)
        self._orchestrator = orchestrator or GenerationOrchestrator(
            self._adapter,
            chunk_size=self._settings.chunk_size,
            cooldown_seconds=self._settings.cooldown_seconds,
            max_concurrency=self._settings.max_concurrency,
        )
        self._assembler = assembler or DocumentAssembler(output_dir)

    @property
    def settings(self) -> StudioSettings:
        return self._settings

    @property
    def orchestrator(self) -> GenerationOrchestrator:
        return self._orchestrator

    @property
    def assembler(self) -> DocumentAssembler:
        return self._assembler

    def plan(self, request: GenerationRequest) -> GenerationPlan:
        """
        Build the plan for ``request`` after checking its credentials are configured.
        """
        plan = build_plan(request)
        self._settings.require_credentials(needs_reference=plan.needs_reference)
        return plan

    async def generate(
        self,
        request: GenerationRequest,
        *,
        progress_callback: ProgressListener | None = None,
    ) -> Bundle:
        plan = self.plan(request)
        try:
            result = await self._orchestrator.execute(plan, progress=progress_callback)
        except PlanAborted:
            logger.exception("Generation of %s aborted.", plan.product.value)
            raise
        return build_bundle(request, result)

    async def create(
        self,
        request: GenerationRequest,
        *,
        progress_callback: ProgressListener | None = None,
        with_archive: bool = False,
    ) -> Delivery:
        """
        Complete flow: generate the bundle, then write its PDF (and sticker zip).
        """
        bundle = await self.generate(request, progress_callback=progress_callback)
        return await self.deliver(bundle, with_archive=with_archive)

    async def deliver(self, bundle: Bundle, *, with_archive: bool = False) -> Delivery:
        try:
            document = await asyncio.to_thread(self._assembler.assemble, bundle)
            archive = None
            if with_archive and isinstance(bundle, StickerSetBundle):
                archive = await asyncio.to_thread(self._assembler.assemble_archive, bundle)
        except DocumentAssemblyFailed as exc:
            exc.bundle = bundle
            logger.error("Assembly of %s failed: %s", bundle.product.value, exc)
            raise
        return Delivery(bundle=bundle, document=document, archive=archive)


def save_bundle(bundle: Bundle, path: Path | str) -> Path:
    output_file = Path(path)
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(bundle_to_yaml(bundle), encoding="utf-8")
    return output_file

