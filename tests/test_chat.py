"""
Tests for the Colory chat assistant.
"""

from unittest.mock import AsyncMock

import pytest

from colory.chat import APOLOGY, COLORY_PERSONA, GREETING, ChatSessionAdapter
from colory.common.config import StudioSettings
from colory.common.errors import ChatUnavailable
from colory.common.llm import ChatResult


def make_adapter(completion):
    return ChatSessionAdapter(model="gemini/chat-model", api_key="key", completion_fn=completion)


class TestChatSession:
    def test_new_session_starts_with_persona(self):
        session = make_adapter(AsyncMock()).open()

        assert session.greeting == GREETING
        assert session.history == [{"role": "system", "content": COLORY_PERSONA}]
        assert session.turns == []

    @pytest.mark.asyncio
    async def test_send_keeps_whole_conversation(self):
        """Should send every earlier turn with each new message."""
        completion = AsyncMock(
            side_effect=[
                ChatResult(text="Hi there, friend!", raw=None),
                ChatResult(text="Dinosaurs are great!", raw=None),
            ]
        )
        adapter = make_adapter(completion)
        session = adapter.open()

        assert await adapter.send(session, "Hello") == "Hi there, friend!"
        assert await adapter.send(session, "  Do you like dinosaurs?  ") == "Dinosaurs are great!"

        assert session.turns == [
            {"role": "user", "content": "Hello"},
            {"role": "assistant", "content": "Hi there, friend!"},
            {"role": "user", "content": "Do you like dinosaurs?"},
            {"role": "assistant", "content": "Dinosaurs are great!"},
        ]
        second_call = completion.await_args_list[1].kwargs
        assert second_call["model"] == "gemini/chat-model"
        assert second_call["api_key"] == "key"
        assert len(second_call["messages"]) == 4

    @pytest.mark.asyncio
    async def test_failed_send_rolls_back_user_turn(self):
        """Should leave the history unchanged when the model call fails."""
        adapter = make_adapter(AsyncMock(side_effect=ConnectionError("offline")))
        session = adapter.open()

        with pytest.raises(ChatUnavailable):
            await adapter.send(session, "Hello")

        assert session.turns == []

    @pytest.mark.asyncio
    async def test_empty_reply_is_unavailable(self):
        adapter = make_adapter(AsyncMock(return_value=ChatResult(text="", raw=None)))
        session = adapter.open()

        with pytest.raises(ChatUnavailable):
            await adapter.send(session, "Hello")
        assert session.turns == []

    @pytest.mark.asyncio
    async def test_blank_message_rejected(self):
        completion = AsyncMock()
        adapter = make_adapter(completion)

        with pytest.raises(ValueError):
            await adapter.send(adapter.open(), "   ")
        completion.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reply_or_apology(self):
        adapter = make_adapter(AsyncMock(side_effect=RuntimeError("quota")))

        assert await adapter.reply_or_apology(adapter.open(), "Hello") == APOLOGY


def test_from_settings_uses_chat_model():
    settings = StudioSettings(api_key="key", chat_model="gemini/chatty")
    completion = AsyncMock()

    adapter = ChatSessionAdapter.from_settings(settings, completion_fn=completion)

    assert adapter._model == "gemini/chatty"
    assert adapter._api_key == "key"
