"""
Environment-driven settings for the Colory studio.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import MissingCredential

DEFAULT_TEXT_MODEL = "gemini/gemini-2.5-flash"
DEFAULT_IMAGE_MODEL = "gemini/imagen-4.0-generate-001"
DEFAULT_MULTIMODAL_IMAGE_MODEL = "gemini/gemini-2.5-flash-image"
DEFAULT_REFERENCE_MODEL = "black-forest-labs/flux-kontext-pro"

DEFAULT_COOLDOWN_SECONDS = 60
DEFAULT_CHUNK_SIZE = 2
DEFAULT_MAX_CONCURRENCY = 3


def _first_env(*names: str) -> str | None:
    for name in names:
        value = os.getenv(name)
        if value and value.strip():
            return value.strip()
    return None


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class StudioSettings:
    """
    Resolved configuration for one studio instance.

    Attributes
    ----------
    api_key:
        Credential for the LiteLLM-backed text, chat and text-to-image models.
    replicate_api_token:
        Credential for the Replicate image-edit model used with reference photos.
    text_model / chat_model:
        LiteLLM model identifiers for story text and the chat assistant.
    image_model:
        Primary text-to-image model (prompt-only call).
    multimodal_image_model:
        Secondary model asked for image output through a chat completion.
    reference_model:
        Replicate model identifier that edits the uploaded photo.
    cooldown_seconds / chunk_size:
        Rate-limit pause length and how many sequential tasks run between pauses.
    max_concurrency:
        Upper bound on concurrently dispatched tasks in parallel stages.
    """

    api_key: str | None = None
    replicate_api_token: str | None = None
    text_model: str = DEFAULT_TEXT_MODEL
    chat_model: str = DEFAULT_TEXT_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    multimodal_image_model: str = DEFAULT_MULTIMODAL_IMAGE_MODEL
    reference_model: str = DEFAULT_REFERENCE_MODEL
    cooldown_seconds: int = DEFAULT_COOLDOWN_SECONDS
    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY

    @classmethod
    def from_env(cls) -> "StudioSettings":
        text_model = _first_env("COLORY_TEXT_MODEL", "LITELLM_MODEL") or DEFAULT_TEXT_MODEL
        return cls(
            api_key=_first_env(
                "COLORY_GEMINI_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY"
            ),
            replicate_api_token=_first_env("REPLICATE_API_TOKEN"),
            text_model=text_model,
            chat_model=_first_env("COLORY_CHAT_MODEL") or text_model,
            image_model=_first_env("COLORY_IMAGE_MODEL") or DEFAULT_IMAGE_MODEL,
            multimodal_image_model=(
                _first_env("COLORY_MULTIMODAL_IMAGE_MODEL") or DEFAULT_MULTIMODAL_IMAGE_MODEL
            ),
            reference_model=_first_env("COLORY_REFERENCE_MODEL", "REPLICATE_MODEL")
            or DEFAULT_REFERENCE_MODEL,
            cooldown_seconds=max(0, _int_env("COLORY_COOLDOWN_SECONDS", DEFAULT_COOLDOWN_SECONDS)),
            chunk_size=max(1, _int_env("COLORY_CHUNK_SIZE", DEFAULT_CHUNK_SIZE)),
            max_concurrency=max(1, _int_env("COLORY_MAX_CONCURRENCY", DEFAULT_MAX_CONCURRENCY)),
        )

    def require_credentials(self, *, needs_reference: bool = False) -> None:
        """
        Raise :class:`MissingCredential` unless the credentials for a plan are present.
        """
        missing: list[str] = []
        if not self.api_key:
            missing.append("GEMINI_API_KEY")
        if needs_reference and not self.replicate_api_token:
            missing.append("REPLICATE_API_TOKEN")
        if missing:
            raise MissingCredential(missing)
