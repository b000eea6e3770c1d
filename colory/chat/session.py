"""
Conversation with Colory, the friendly robot helper.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from colory.common.config import StudioSettings
from colory.common.errors import ChatUnavailable
from colory.common.llm import ChatResult, CompletionCallable, call_chat_completion

logger = logging.getLogger(__name__)

COLORY_PERSONA = (
    "You are Colory, the friendly robot helper from the magical world of coloring! "
    "Your job is to chat with kids and their parents and make them smile. "
    "Be super friendly, cheerful, and use simple, happy words. "
    "If they ask how the coloring book is made, you can say something like: "
    '"My grown-up friends use a little bit of computer magic to draw special pictures '
    "just for you! You tell them a theme, like 'space dinosaurs,' and your name, and "
    'poof! They create a whole book you can print and color!"'
)

GREETING = "Hello! How can I help you today?"
APOLOGY = "Sorry, I'm having trouble connecting. Please try again."


@dataclass
class ChatSession:
    """
    Conversation state for one chat window.

    ``history`` holds the system instruction followed by alternating user and
    assistant turns; only :meth:`ChatSessionAdapter.send` mutates it.
    """

    system_instruction: str
    greeting: str = GREETING
    history: list[dict[str, str]] = field(default_factory=list)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def turns(self) -> list[dict[str, str]]:
        """User and assistant turns, without the system instruction."""
        return [message for message in self.history if message["role"] != "system"]


class ChatSessionAdapter:
    def __init__(
        self,
        *,
        model: str,
        api_key: str | None = None,
        system_instruction: str = COLORY_PERSONA,
        temperature: float | None = 0.8,
        completion_fn: CompletionCallable | None = None,
    ) -> None:
        self._model = model
        self._api_key = api_key
        self._system_instruction = system_instruction
        self._temperature = temperature
        self._completion_fn: CompletionCallable = completion_fn or call_chat_completion

    @classmethod
    def from_settings(cls, settings: StudioSettings, **kwargs: Any) -> "ChatSessionAdapter":
        return cls(model=settings.chat_model, api_key=settings.api_key, **kwargs)

    def open(self) -> ChatSession:
        return ChatSession(
            system_instruction=self._system_instruction,
            history=[{"role": "system", "content": self._system_instruction}],
        )

    async def send(self, session: ChatSession, message: str) -> str:
        """
        Send ``message`` with the whole conversation and return the reply.

        On failure the user turn is removed again so the session can be reused.
        """
        text = message.strip()
        if not text:
            raise ValueError("Chat message must not be empty.")

        async with session._lock:
            session.history.append({"role": "user", "content": text})
            try:
                result: ChatResult = await self._completion_fn(
                    model=self._model,
                    messages=list(session.history),
                    temperature=self._temperature,
                    api_key=self._api_key,
                )
            except Exception as exc:
                session.history.pop()
                logger.warning("Chat request to %s failed: %s", self._model, exc)
                raise ChatUnavailable(f"Chat model {self._model} is unavailable: {exc}") from exc

            if not result.text:
                session.history.pop()
                raise ChatUnavailable(f"Chat model {self._model} returned an empty reply.")

            session.history.append({"role": "assistant", "content": result.text})
            return result.text

    async def reply_or_apology(self, session: ChatSession, message: str) -> str:
        try:
            return await self.send(session, message)
        except ChatUnavailable:
            return APOLOGY
