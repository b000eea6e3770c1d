"""
Integration with Replicate for photo-conditioned image generation.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable as IterableABC
from io import BytesIO
from typing import Any, BinaryIO, Callable

import replicate
import requests

from colory.common.errors import ReferenceGenerationFailed
from colory.common.media import ReferenceImage, encode_data_uri

logger = logging.getLogger(__name__)


def _build_flux_kontext_input(*, prompt: str, image_input: BinaryIO) -> dict[str, Any]:
    return {
        "prompt": prompt,
        "input_image": image_input,
        "output_format": "png",
        "safety_tolerance": 2,
        "prompt_upsampling": False,
        "aspect_ratio": "1:1",
    }


def _build_nano_banana_input(*, prompt: str, image_input: BinaryIO) -> dict[str, Any]:
    return {
        "prompt": prompt,
        "image_input": [image_input],
        "output_format": "png",
    }


_MODEL_INPUT_BUILDERS: dict[str, Callable[..., dict[str, Any]]] = {
    "black-forest-labs/flux-kontext-pro": _build_flux_kontext_input,
    "black-forest-labs/flux-kontext-max": _build_flux_kontext_input,
    "google/nano-banana": _build_nano_banana_input,
}


def _build_replicate_input_payload(
    *,
    model_identifier: str,
    prompt: str,
    image_input: BinaryIO,
) -> dict[str, Any]:
    normalized_identifier = model_identifier.strip().lower()
    builder = _MODEL_INPUT_BUILDERS.get(normalized_identifier)
    if builder is None and ":" in normalized_identifier:
        base_identifier = normalized_identifier.split(":", maxsplit=1)[0]
        builder = _MODEL_INPUT_BUILDERS.get(base_identifier)
    if builder is None:
        supported_models = ", ".join(sorted(_MODEL_INPUT_BUILDERS))
        raise ValueError(
            "Model identifier "
            f"'{model_identifier}' is not configured with a default input payload. "
            f"Supported models: {supported_models}."
        )

    return builder(prompt=prompt, image_input=image_input)


class ReplicateReferenceGenerator:
    """
    Wrapper around the Replicate client for redrawing an uploaded photo.

    Parameters
    ----------
    api_token:
        Replicate API token.
    model_identifier:
        Model string in the ``owner/model`` or ``owner/model:version`` format.
        Must be one of the models with a known input payload.
    client:
        Optional pre-configured :class:`replicate.Client`. Mainly useful for testing.
    request_timeout:
        Timeout in seconds for downloading the produced image.
    """

    def __init__(
        self,
        *,
        api_token: str | None = None,
        model_identifier: str,
        client: replicate.Client | None = None,
        request_timeout: float = 60.0,
    ) -> None:
        if not api_token and client is None:
            raise ValueError("Replicate API token is required for reference image generation.")
        # Unknown models fail here, not on the first request.
        normalized = model_identifier.strip().lower().split(":", maxsplit=1)[0]
        if normalized not in _MODEL_INPUT_BUILDERS:
            supported_models = ", ".join(sorted(_MODEL_INPUT_BUILDERS))
            raise ValueError(
                f"Unsupported reference model '{model_identifier}'. Supported models: {supported_models}."
            )
        self._model_identifier = model_identifier
        self._client = client or replicate.Client(api_token=api_token)
        self._request_timeout = request_timeout

    @property
    def model_identifier(self) -> str:
        """Return the model identifier currently used."""
        return self._model_identifier

    async def generate(self, prompt: str, photo: ReferenceImage) -> str:
        """
        Redraw ``photo`` following ``prompt`` and return the result as a data URI.
        """
        replicate_input = _build_replicate_input_payload(
            model_identifier=self._model_identifier,
            prompt=prompt,
            image_input=BytesIO(photo.data),
        )

        try:
            raw_output = await self._client.async_run(self._model_identifier, input=replicate_input)
        except Exception as exc:
            raise ReferenceGenerationFailed(
                f"Model {self._model_identifier} failed to redraw the reference photo: {exc}"
            ) from exc

        outputs = normalize_image_outputs(raw_output)
        if not outputs:
            raise ReferenceGenerationFailed(
                f"No image generated from {self._model_identifier}."
            )

        return await self._to_data_uri(outputs[0])

    async def _to_data_uri(self, location: str) -> str:
        if location.startswith("data:"):
            return location
        try:
            content = await asyncio.to_thread(self._download, location)
        except requests.RequestException as exc:
            raise ReferenceGenerationFailed(
                f"Could not download the generated image from {location}: {exc}"
            ) from exc
        if not content:
            raise ReferenceGenerationFailed(f"Generated image at {location} was empty.")
        return encode_data_uri(content, "image/png")

    def _download(self, url: str) -> bytes:
        response = requests.get(url, timeout=self._request_timeout)
        response.raise_for_status()
        return response.content


def normalize_image_outputs(raw: Any) -> list[str]:
    """
    Normalize the image outputs returned by Replicate into a list of URL strings.
    """

    if raw is None:
        return []

    if isinstance(raw, str):
        return [raw] if raw.strip() else []

    if isinstance(raw, bytes):
        return [raw.decode("utf-8", errors="ignore")]

    # FileOutput iterates over byte chunks; its URL is what we want.
    if hasattr(raw, "url"):
        return [str(raw.url)]

    if isinstance(raw, IterableABC):
        collected = list(raw)
        if not collected:
            return []

        if all(isinstance(item, str) and len(item) == 1 for item in collected):
            return ["".join(collected)]

        normalized: list[str] = []
        for item in collected:
            if isinstance(item, str):
                if item.strip():
                    normalized.append(item)
            elif isinstance(item, bytes):
                normalized.append(item.decode("utf-8", errors="ignore"))
            elif hasattr(item, "url"):
                normalized.append(str(item.url))
            elif isinstance(item, IterableABC):
                normalized.extend(normalize_image_outputs(item))
            elif item is not None:
                normalized.append(str(item))
        return normalized

    return [str(raw)]
