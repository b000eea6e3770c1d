"""
End-to-end orchestration for Colory coloring books, sticker sets and storybooks.
"""

from .models import (
    Bundle,
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
from .orchestrator import GenerationOrchestrator, PlanRun, PlanState
from .planner import build_plan
from .progress import ProgressChannel, ProgressEvent, ProgressKind, ProgressListener
from .requests import ColoringBookRequest, GenerationRequest, StickerRequest, StorybookRequest
from .pipeline import ColoryStudio, Delivery, build_bundle, save_bundle

__all__ = [
    "Bundle",
    "ColoringBookBundle",
    "ColoringBookRequest",
    "ColoryStudio",
    "Delivery",
    "ExecutionMode",
    "GenerationOrchestrator",
    "GenerationPlan",
    "GenerationRequest",
    "GenerationResult",
    "GenerationTask",
    "PlanRun",
    "PlanStage",
    "PlanState",
    "ProductKind",
    "ProgressChannel",
    "ProgressEvent",
    "ProgressKind",
    "ProgressListener",
    "StickerRequest",
    "StickerSetBundle",
    "StorybookBundle",
    "StorybookRequest",
    "TaskKind",
    "build_bundle",
    "build_plan",
    "bundle_from_dict",
    "bundle_from_yaml",
    "bundle_to_yaml",
    "save_bundle",
]
