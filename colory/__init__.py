"""
Colory package exposing generation, pipeline, document and chat tooling.
"""

from .pipeline import (
    ColoringBookRequest,
    ColoryStudio,
    GenerationOrchestrator,
    StickerRequest,
    StorybookRequest,
    build_plan,
)
from .pdf_generation import DocumentAssembler
from .chat import ChatSessionAdapter

__all__ = [
    "ChatSessionAdapter",
    "ColoringBookRequest",
    "ColoryStudio",
    "DocumentAssembler",
    "GenerationOrchestrator",
    "StickerRequest",
    "StorybookRequest",
    "build_plan",
]
