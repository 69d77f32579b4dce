"""
Session management for provider-backed conversational state.

Each slot owns at most one provider chat session. The session is replaced
whenever the requested model or the resolved provider changes, so
continuation state never leaks across models or providers.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from webgate.providers.base import ProviderChatSession, WebModelProvider

logger = logging.getLogger("webgate.gateway.sessions")

ProviderResolver = Callable[[], WebModelProvider]


class SessionManager:
    """One logical conversation slot."""

    def __init__(self, resolve_provider: ProviderResolver, name: str = "session"):
        self._resolve_provider = resolve_provider
        self.name = name
        self.model = ""
        self.provider_id = ""
        self.session: ProviderChatSession | None = None
        self._lock = asyncio.Lock()

    async def get_response(self, model: str, message: str, files: Sequence[str] = ()) -> str:
        """Send ``message`` on this slot's session and return the reply text."""
        async with self._lock:
            provider = self._resolve_provider()
            if self.session is None or self.model != model or self.provider_id != provider.id:
                logger.debug(f"Starting {self.name} session on {provider.id} with {model}")
                self.session = provider.start_chat(model)
                self.model = model
                self.provider_id = provider.id

            output = await self.session.send_message(message, files)
            return output.text


@dataclass
class SessionSlots:
    """The fixed slots exposed over HTTP."""

    translate: SessionManager
    chat: SessionManager


def create_session_slots(resolve_provider: ProviderResolver) -> SessionSlots:
    return SessionSlots(
        translate=SessionManager(resolve_provider, name="translate"),
        chat=SessionManager(resolve_provider, name="chat"),
    )


__all__ = ["SessionManager", "SessionSlots", "create_session_slots", "ProviderResolver"]
