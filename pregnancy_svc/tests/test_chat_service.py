"""
Tests for the chat session registry and the streaming chat service.
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from google.api_core import exceptions as google_exceptions

from core.exceptions import ChatServiceError, EmptyMessageError
from services.chat_service import (
    SAFETY_BLOCK_MESSAGE,
    ChatService,
    ChatSessionRegistry,
    build_system_instruction,
)
from services.gemini_service import QUOTA_MESSAGE
from services.history_summary import FIRST_VISIT_SUMMARY
from conftest import PATIENT_ID, FakeStream


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


async def collect(fragments):
    return [fragment async for fragment in fragments]


def send(chat_service, message, user_id=PATIENT_ID):
    async def _run():
        fragments = await chat_service.stream_reply(user_id, message)
        return await collect(fragments)
    return asyncio.run(_run())


def fake_chat(*replies):
    chat = MagicMock()
    chat.send_message_async = AsyncMock(side_effect=list(replies))
    return chat


# =============================================================================
# Registry
# =============================================================================

class TestChatSessionRegistry:

    def test_get_unknown_user(self):
        assert ChatSessionRegistry().get("nobody") is None

    def test_put_and_get(self):
        registry = ChatSessionRegistry()
        chat = object()
        registry.put("u1", chat)
        assert registry.get("u1") is chat
        assert "u1" in registry

    def test_least_recently_used_is_evicted(self):
        registry = ChatSessionRegistry(max_sessions=2)
        registry.put("u1", "chat-1")
        registry.put("u2", "chat-2")
        registry.get("u1")

        registry.put("u3", "chat-3")

        assert len(registry) == 2
        assert "u2" not in registry
        assert registry.get("u1") == "chat-1"
        assert registry.get("u3") == "chat-3"

    def test_replacing_a_session_does_not_evict_others(self):
        registry = ChatSessionRegistry(max_sessions=2)
        registry.put("u1", "old")
        registry.put("u2", "chat-2")
        registry.put("u1", "new")

        assert len(registry) == 2
        assert registry.get("u1") == "new"

    def test_idle_session_expires(self):
        clock = FakeClock()
        registry = ChatSessionRegistry(idle_timeout_seconds=60, clock=clock)
        registry.put("u1", "chat")

        clock.now = 61
        assert registry.get("u1") is None
        assert "u1" not in registry

    def test_activity_refreshes_idle_timer(self):
        clock = FakeClock()
        registry = ChatSessionRegistry(idle_timeout_seconds=60, clock=clock)
        registry.put("u1", "chat")

        clock.now = 50
        assert registry.get("u1") == "chat"
        clock.now = 100
        assert registry.get("u1") == "chat"

    def test_zero_timeout_disables_expiry(self):
        clock = FakeClock()
        registry = ChatSessionRegistry(idle_timeout_seconds=0, clock=clock)
        registry.put("u1", "chat")
        clock.now = 10 ** 6
        assert registry.get("u1") == "chat"

    def test_discard(self):
        registry = ChatSessionRegistry()
        registry.put("u1", "chat")
        assert registry.discard("u1") is True
        assert registry.discard("u1") is False

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            ChatSessionRegistry(max_sessions=0)


# =============================================================================
# Chat service
# =============================================================================

def test_system_instruction_contains_history():
    instruction = build_system_instruction(FIRST_VISIT_SUMMARY)
    assert "Rafeeqa" in instruction
    assert FIRST_VISIT_SUMMARY in instruction


def test_reply_streamed_in_order(chat_service, fake_gemini, chat_registry):
    chat = fake_chat(FakeStream(["مرحباً", "، كيف ", "حالك؟"]))
    fake_gemini.start_chat.return_value = chat

    fragments = send(chat_service, "  مرحبا  ")

    assert fragments == ["مرحباً", "، كيف ", "حالك؟"]
    chat.send_message_async.assert_awaited_once_with("مرحبا", stream=True)
    assert PATIENT_ID in chat_registry


def test_new_session_seeded_with_history(chat_service, fake_gemini, make_record):
    make_record()
    fake_gemini.start_chat.return_value = fake_chat(FakeStream(["ok"]))

    send(chat_service, "hello")

    instruction = fake_gemini.start_chat.call_args.args[0]
    assert "Patient History (1 previous visit):" in instruction


def test_session_reused_between_messages(chat_service, fake_gemini):
    chat = fake_chat(FakeStream(["one"]), FakeStream(["two"]))
    fake_gemini.start_chat.return_value = chat

    assert send(chat_service, "first") == ["one"]
    assert send(chat_service, "second") == ["two"]

    fake_gemini.start_chat.assert_called_once()
    assert chat.send_message_async.await_count == 2


@pytest.mark.parametrize("message", ["", "   ", None])
def test_empty_message_makes_no_call(chat_service, fake_gemini, message):
    with pytest.raises(EmptyMessageError):
        asyncio.run(chat_service.stream_reply(PATIENT_ID, message))
    fake_gemini.start_chat.assert_not_called()


def test_send_failure_discards_session(chat_service, fake_gemini, chat_registry):
    failing = fake_chat(google_exceptions.ServiceUnavailable("down"))
    working = fake_chat(FakeStream(["back"]))
    fake_gemini.start_chat.side_effect = [failing, working]

    with pytest.raises(ChatServiceError):
        send(chat_service, "hello")
    assert PATIENT_ID not in chat_registry

    assert send(chat_service, "hello again") == ["back"]
    assert fake_gemini.start_chat.call_count == 2


def test_mid_stream_failure_discards_session(chat_service, fake_gemini, chat_registry):
    fake_gemini.start_chat.return_value = fake_chat(
        FakeStream(["partial"], error=google_exceptions.InternalServerError("broken"))
    )

    async def _run():
        received = []
        fragments = await chat_service.stream_reply(PATIENT_ID, "hello")
        with pytest.raises(ChatServiceError):
            async for fragment in fragments:
                received.append(fragment)
        return received

    assert asyncio.run(_run()) == ["partial"]
    assert PATIENT_ID not in chat_registry


def test_abandoned_reply_discards_session(chat_service, fake_gemini, chat_registry):
    first = fake_chat(FakeStream(["one", "two", "three"]))
    second = fake_chat(FakeStream(["fresh"]))
    fake_gemini.start_chat.side_effect = [first, second]

    async def _read_first_fragment():
        fragments = await chat_service.stream_reply(PATIENT_ID, "hello")
        fragment = await fragments.__anext__()
        await fragments.aclose()
        return fragment

    assert asyncio.run(_read_first_fragment()) == "one"
    assert PATIENT_ID not in chat_registry

    assert send(chat_service, "hello again") == ["fresh"]
    assert fake_gemini.start_chat.call_count == 2


def test_quota_error_message(chat_service, fake_gemini):
    fake_gemini.start_chat.return_value = fake_chat(google_exceptions.ResourceExhausted("quota"))

    with pytest.raises(ChatServiceError) as exc_info:
        send(chat_service, "hello")
    assert exc_info.value.detail == QUOTA_MESSAGE


def test_safety_block_message(chat_service, fake_gemini):
    from google.generativeai.types import BlockedPromptException

    fake_gemini.start_chat.return_value = fake_chat(BlockedPromptException("blocked"))

    with pytest.raises(ChatServiceError) as exc_info:
        send(chat_service, "hello")
    assert exc_info.value.detail == SAFETY_BLOCK_MESSAGE


def test_reset(chat_service, fake_gemini):
    fake_gemini.start_chat.return_value = fake_chat(FakeStream(["ok"]))
    send(chat_service, "hello")

    assert chat_service.active_sessions() == 1
    assert chat_service.reset(PATIENT_ID) is True
    assert chat_service.reset(PATIENT_ID) is False
    assert chat_service.active_sessions() == 0


def test_registry_bound_applies_to_service(record_repo, fake_gemini):
    registry = ChatSessionRegistry(max_sessions=1)
    service = ChatService(
        registry=registry,
        record_repository=record_repo,
        gemini_service_factory=lambda: fake_gemini
    )
    fake_gemini.start_chat.side_effect = lambda instruction: fake_chat(FakeStream(["ok"]))

    send(service, "hi", user_id="u1")
    send(service, "hi", user_id="u2")

    assert len(registry) == 1
    assert "u2" in registry
