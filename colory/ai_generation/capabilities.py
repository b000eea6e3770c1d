"""
Content capability adapter: the three generation operations the studio relies on.

``generate_image`` walks an ordered fallback policy of text-to-image strategies,
``generate_image_from_reference`` has exactly one backing model, and
``generate_text`` is a single chat completion.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol, Sequence

import requests
from litellm import acompletion, aimage_generation

from colory.common.config import StudioSettings
from colory.common.errors import (
    AllProvidersExhausted,
    ReferenceGenerationFailed,
    TextGenerationFailed,
)
from colory.common.llm import ChatResult, CompletionCallable, call_chat_completion
from colory.common.media import ReferenceImage, encode_data_uri, is_data_uri

from .replicate_service import ReplicateReferenceGenerator

logger = logging.getLogger(__name__)


class EmptyImageResponse(RuntimeError):
    """A model answered without any image payload."""


class ImageStrategy(Protocol):
    """One tier of the text-to-image fallback policy."""

    name: str

    async def generate(self, prompt: str) -> str:
        ...


def _field(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


class TextToImageStrategy:
    """
    Prompt-only image generation through LiteLLM's ``aimage_generation``.
    """

    def __init__(
        self,
        *,
        model: str,
        api_key: str | None = None,
        size: str = "1024x1024",
        request_timeout: float = 60.0,
    ) -> None:
        self.name = model
        self._model = model
        self._api_key = api_key
        self._size = size
        self._request_timeout = request_timeout

    async def generate(self, prompt: str) -> str:
        payload: dict[str, Any] = {
            "model": self._model,
            "prompt": prompt,
            "n": 1,
            "size": self._size,
        }
        if self._api_key is not None:
            payload["api_key"] = self._api_key

        response = await aimage_generation(**payload)

        data = _field(response, "data") or []
        for image in data:
            b64_json = _field(image, "b64_json")
            if b64_json:
                return f"data:image/png;base64,{b64_json}"
            url = _field(image, "url")
            if url:
                return await self._download(str(url))
        raise EmptyImageResponse(f"Model {self._model} did not return image data.")

    async def _download(self, url: str) -> str:
        if is_data_uri(url):
            return url

        def _fetch() -> bytes:
            result = requests.get(url, timeout=self._request_timeout)
            result.raise_for_status()
            return result.content

        return encode_data_uri(await asyncio.to_thread(_fetch), "image/png")


class MultimodalImageStrategy:
    """
    General content generation restricted to image output.

    Sends the prompt as a chat message and returns the first inline image of
    the reply.
    """

    def __init__(self, *, model: str, api_key: str | None = None) -> None:
        self.name = model
        self._model = model
        self._api_key = api_key

    async def generate(self, prompt: str) -> str:
        payload: dict[str, Any] = {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
            "modalities": ["image", "text"],
        }
        if self._api_key is not None:
            payload["api_key"] = self._api_key

        response = await acompletion(**payload)

        choices = _field(response, "choices") or []
        for choice in choices:
            message = _field(choice, "message")
            for image in _field(message, "images") or []:
                url = _field(_field(image, "image_url"), "url")
                if url and is_data_uri(str(url)):
                    return str(url)
        raise EmptyImageResponse(f"Model {self._model} did not return image data.")


class ImageFallbackPolicy:
    """
    Ordered list of image strategies tried until one yields an image.
    """

    def __init__(self, strategies: Sequence[ImageStrategy]) -> None:
        if not strategies:
            raise ValueError("At least one image strategy is required.")
        self._strategies = tuple(strategies)

    @property
    def strategies(self) -> tuple[ImageStrategy, ...]:
        return self._strategies

    async def generate(self, prompt: str) -> str:
        failures: list[tuple[str, BaseException]] = []
        for strategy in self._strategies:
            logger.info("Attempting to generate image with model: %s", strategy.name)
            try:
                image = await strategy.generate(prompt)
            except Exception as exc:
                logger.warning(
                    "Failed to generate image with model: %s (%s)",
                    strategy.name,
                    exc,
                    exc_info=True,
                )
                failures.append((strategy.name, exc))
                continue
            if not is_data_uri(image):
                logger.warning("Model %s returned an unusable image payload.", strategy.name)
                failures.append(
                    (strategy.name, EmptyImageResponse(f"Model {strategy.name} returned no image."))
                )
                continue
            logger.info("Successfully generated image with %s", strategy.name)
            return image
        raise AllProvidersExhausted(failures)


class ContentCapabilityAdapter:
    """
    Wraps the generation backends behind three asynchronous operations.

    The adapter is stateless between calls; it only holds backend handles.
    """

    def __init__(
        self,
        *,
        image_policy: ImageFallbackPolicy,
        reference_generator: ReplicateReferenceGenerator | None = None,
        text_model: str,
        api_key: str | None = None,
        completion_fn: CompletionCallable | None = None,
    ) -> None:
        self._image_policy = image_policy
        self._reference_generator = reference_generator
        self._text_model = text_model
        self._api_key = api_key
        self._completion_fn: CompletionCallable = completion_fn or call_chat_completion

    @classmethod
    def from_settings(cls, settings: StudioSettings) -> "ContentCapabilityAdapter":
        image_policy = ImageFallbackPolicy(
            [
                TextToImageStrategy(model=settings.image_model, api_key=settings.api_key),
                MultimodalImageStrategy(
                    model=settings.multimodal_image_model, api_key=settings.api_key
                ),
            ]
        )
        reference_generator = None
        if settings.replicate_api_token:
            reference_generator = ReplicateReferenceGenerator(
                api_token=settings.replicate_api_token,
                model_identifier=settings.reference_model,
            )
        return cls(
            image_policy=image_policy,
            reference_generator=reference_generator,
            text_model=settings.text_model,
            api_key=settings.api_key,
        )

    @property
    def supports_reference(self) -> bool:
        return self._reference_generator is not None

    async def generate_image(self, prompt: str) -> str:
        """Generate an image from a text prompt, walking the fallback policy."""
        return await self._image_policy.generate(prompt)

    async def generate_image_from_reference(self, prompt: str, photo: ReferenceImage) -> str:
        """Generate an image conditioned on ``photo``; no fallback."""
        if self._reference_generator is None:
            raise ReferenceGenerationFailed("No reference image model is configured.")
        return await self._reference_generator.generate(prompt, photo)

    async def generate_text(
        self,
        prompt: str,
        *,
        temperature: float = 0.7,
        max_output_tokens: int | None = 4000,
    ) -> str:
        """Generate plain text for ``prompt``."""
        try:
            result: ChatResult = await self._completion_fn(
                model=self._text_model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                max_tokens=max_output_tokens,
                api_key=self._api_key,
            )
        except Exception as exc:
            raise TextGenerationFailed(f"Text generation with {self._text_model} failed: {exc}") from exc

        if not result.text:
            raise TextGenerationFailed("LLM response did not contain any text content.")

        return result.text
