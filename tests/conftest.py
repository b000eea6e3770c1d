"""
Shared fixtures for Colory tests.
"""

from __future__ import annotations

import asyncio
import base64
import json
from typing import Dict, List, Optional, Tuple

import pytest

from colory.common.config import StudioSettings
from colory.common.media import ReferenceImage, encode_data_uri

# 1x1 transparent PNG.
TINY_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)
PNG_URI = encode_data_uri(TINY_PNG, "image/png")

NARRATIVE = "\n\n".join(
    [
        "Once upon a time, Mia lived with her stepmother.",
        "Mia dreamed of going to the royal ball.",
        "Grandma the fairy godmother appeared in a shimmer of light.",
        "At the ball, Mia danced with the prince until midnight.",
        "She ran home and lost a glass slipper on the stairs.",
        "The prince found Mia and they lived happily ever after.",
    ]
)

MOMENTS = [
    "Mia sits by the fireplace, dreaming of the ball.",
    "Grandma waves her wand and a pumpkin becomes a coach.",
    "Mia and the prince dance under sparkling chandeliers.",
]


class ScriptedAdapter:
    """
    Stand-in for the capability adapter that records every call.

    ``fail_on`` makes any call whose prompt contains the fragment raise;
    ``delays`` maps prompt fragments to seconds to wait before answering.
    With ``unique_images`` each image output encodes its own prompt so tests
    can check which output landed where.
    """

    def __init__(
        self,
        *,
        fail_on: Optional[str] = None,
        delays: Optional[Dict[str, float]] = None,
        unique_images: bool = False,
        narrative: str = NARRATIVE,
        moments_reply: Optional[str] = None,
    ) -> None:
        self.fail_on = fail_on
        self.delays = delays or {}
        self.unique_images = unique_images
        self.narrative = narrative
        self.moments_reply = moments_reply if moments_reply is not None else json.dumps(MOMENTS)
        self.calls: List[Tuple[str, str]] = []
        self.completed: List[str] = []
        self.cancelled: List[str] = []
        self.photos: List[ReferenceImage] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def generate_image(self, prompt: str) -> str:
        return await self._respond("image", prompt, self._image_for(prompt))

    async def generate_image_from_reference(self, prompt: str, photo: ReferenceImage) -> str:
        self.photos.append(photo)
        return await self._respond("imageWithReference", prompt, self._image_for(prompt))

    async def generate_text(self, prompt: str) -> str:
        if "master storyteller" in prompt:
            reply = self.narrative
        elif "art director" in prompt:
            reply = self.moments_reply
        else:
            reply = "ok"
        return await self._respond("text", prompt, reply)

    def _image_for(self, prompt: str) -> str:
        if self.unique_images:
            return encode_data_uri(prompt.encode("utf-8"), "image/png")
        return PNG_URI

    async def _respond(self, kind: str, prompt: str, value: str) -> str:
        self.calls.append((kind, prompt))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            for fragment, delay in self.delays.items():
                if fragment in prompt:
                    await asyncio.sleep(delay)
            if self.fail_on is not None and self.fail_on in prompt:
                raise RuntimeError(f"scripted failure: {self.fail_on}")
            self.completed.append(prompt)
            return value
        except asyncio.CancelledError:
            self.cancelled.append(prompt)
            raise
        finally:
            self.in_flight -= 1


class RecordingSleep:
    """Async sleep replacement that records each requested wait."""

    def __init__(self) -> None:
        self.ticks: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.ticks.append(seconds)
        await asyncio.sleep(0)

    @property
    def total(self) -> float:
        return sum(self.ticks)


@pytest.fixture
def png_uri() -> str:
    return PNG_URI


@pytest.fixture
def photo() -> ReferenceImage:
    return ReferenceImage(data=TINY_PNG, mime_type="image/png")


@pytest.fixture
def adapter() -> ScriptedAdapter:
    return ScriptedAdapter()


@pytest.fixture
def fake_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def settings() -> StudioSettings:
    return StudioSettings(
        api_key="test-gemini-key",
        replicate_api_token="test-replicate-token",
        cooldown_seconds=0,
    )


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "COLORY_GEMINI_API_KEY",
        "GEMINI_API_KEY",
        "GOOGLE_API_KEY",
        "API_KEY",
        "REPLICATE_API_TOKEN",
        "COLORY_TEXT_MODEL",
        "LITELLM_MODEL",
        "COLORY_CHAT_MODEL",
        "COLORY_IMAGE_MODEL",
        "COLORY_MULTIMODAL_IMAGE_MODEL",
        "COLORY_REFERENCE_MODEL",
        "REPLICATE_MODEL",
        "COLORY_COOLDOWN_SECONDS",
        "COLORY_CHUNK_SIZE",
        "COLORY_MAX_CONCURRENCY",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
