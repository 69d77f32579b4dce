"""
Tests for webgate/gateway/sessions.py
"""

from __future__ import annotations

import asyncio

from support.fakes import FakeProvider
from webgate.gateway.sessions import SessionManager, create_session_slots


class TestSessionManager:
    """Test session reuse and replacement"""

    async def test_same_model_reuses_session(self):
        provider = FakeProvider()
        slot = SessionManager(lambda: provider)

        first = await slot.get_response("gemini-2.5-flash", "hello")
        second = await slot.get_response("gemini-2.5-flash", "again")

        assert len(provider.chats) == 1
        assert first == "gemini-2.5-flash turn 1: hello"
        assert second == "gemini-2.5-flash turn 2: again"

    async def test_model_change_starts_fresh_session(self):
        provider = FakeProvider()
        slot = SessionManager(lambda: provider, name="translate")

        await slot.get_response("gemini-2.5-pro", "one")
        reply = await slot.get_response("gemini-2.5-flash", "two")

        assert [c.model for c in provider.chats] == ["gemini-2.5-pro", "gemini-2.5-flash"]
        assert reply == "gemini-2.5-flash turn 1: two"

    async def test_provider_change_starts_fresh_session(self):
        gemini = FakeProvider()
        hosted = FakeProvider("openai-web", "OpenAI Web")
        current = {"provider": gemini}
        slot = SessionManager(lambda: current["provider"])

        await slot.get_response("gemini-2.5-flash", "one")
        current["provider"] = hosted
        await slot.get_response("gemini-2.5-flash", "two")

        assert len(gemini.chats) == 1
        assert len(hosted.chats) == 1
        assert slot.provider_id == "openai-web"

    async def test_concurrent_turns_are_serialized(self):
        provider = FakeProvider()
        slot = SessionManager(lambda: provider)

        replies = await asyncio.gather(
            *(slot.get_response("gemini-2.5-flash", f"m{i}") for i in range(5))
        )

        assert len(provider.chats) == 1
        assert sorted(r.split(":")[0] for r in replies) == [
            f"gemini-2.5-flash turn {i}" for i in range(1, 6)
        ]


class TestSessionSlots:
    """Test the fixed slots"""

    async def test_slots_are_independent(self):
        provider = FakeProvider()
        slots = create_session_slots(lambda: provider)

        await slots.translate.get_response("gemini-2.5-flash", "a")
        await slots.chat.get_response("gemini-2.5-flash", "b")

        assert len(provider.chats) == 2
        assert slots.translate.name == "translate"
        assert slots.chat.name == "chat"
