"""
AI content generation package for Colory.
"""

from .capabilities import (
    ContentCapabilityAdapter,
    ImageFallbackPolicy,
    ImageStrategy,
    MultimodalImageStrategy,
    TextToImageStrategy,
)
from .prompting import (
    AgeLevel,
    CoverOptions,
    PagePrompt,
    build_coloring_page_prompts,
    build_cover_prompt,
    build_sticker_prompts,
)
from .replicate_service import ReplicateReferenceGenerator

__all__ = [
    "AgeLevel",
    "ContentCapabilityAdapter",
    "CoverOptions",
    "ImageFallbackPolicy",
    "ImageStrategy",
    "MultimodalImageStrategy",
    "PagePrompt",
    "ReplicateReferenceGenerator",
    "TextToImageStrategy",
    "build_coloring_page_prompts",
    "build_cover_prompt",
    "build_sticker_prompts",
]
