"""
Gemini Web provider: adapts ``GeminiWebClient`` to the provider contract.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from webgate.core.config import GeminiSettings
from webgate.core.exceptions import ProviderError

from .base import ProviderChatSession, ProviderOutput, WebModelProvider
from .webchat.client import CookieSource, GeminiChatSession, GeminiWebClient, SessionFactory
from .webchat.parsing import ModelOutput

logger = logging.getLogger("webgate.providers.gemini_web")


def _to_provider_output(output: ModelOutput) -> ProviderOutput:
    return ProviderOutput(text=output.text, metadata=list(output.metadata), rcid=output.rcid)


class GeminiProviderChatSession(ProviderChatSession):
    def __init__(self, session: GeminiChatSession):
        self._session = session
        self.model = session.model

    @property
    def metadata(self) -> list[str | None]:
        return self._session.metadata

    async def send_message(self, prompt: str, files: Sequence[str] = ()) -> ProviderOutput:
        return _to_provider_output(await self._session.send_message(prompt, files))


class GeminiWebProvider(WebModelProvider):
    """Cookie-authenticated Gemini web app."""

    id = "gemini-web"
    label = "Gemini Web"

    def __init__(
        self,
        settings: GeminiSettings,
        config_path: str | Path,
        session_factory: SessionFactory | None = None,
        cookie_source: CookieSource | None = None,
    ):
        super().__init__()
        self.settings = settings
        self.config_path = str(config_path)
        self._session_factory = session_factory
        self._cookie_source = cookie_source
        self._client: GeminiWebClient | None = None

    def is_enabled(self) -> bool:
        return self.settings.enabled

    async def initialize(self) -> bool:
        if not self.settings.enabled:
            self._last_error = f"Gemini is disabled via config: {self.config_path}"
            return False

        await self.close()
        client = GeminiWebClient(
            self.settings,
            self.config_path,
            session_factory=self._session_factory,
            cookie_source=self._cookie_source,
        )
        try:
            await client.init()
        except Exception as e:
            message = getattr(e, "message", None) or str(e) or "Gemini initialization failed."
            self._last_error = message
            logger.error(f"Gemini client initialization failed: {message}")
            await client.close()
            return False

        self._client = client
        self._last_error = None
        return True

    def _require_client(self) -> GeminiWebClient:
        if self._client is None:
            raise ProviderError(
                message=self._last_error or "Gemini client unavailable",
                status_code=503,
            )
        return self._client

    async def generate_content(
        self,
        prompt: str,
        model: str,
        files: Sequence[str] = (),
        metadata: Sequence[str | None] | None = None,
    ) -> ProviderOutput:
        output = await self._require_client().generate_content(prompt, model, files, metadata)
        return _to_provider_output(output)

    def start_chat(self, model: str) -> ProviderChatSession:
        return GeminiProviderChatSession(self._require_client().start_chat(model))

    async def close(self) -> None:
        if self._client is not None:
            client, self._client = self._client, None
            await client.close()


__all__ = ["GeminiWebProvider", "GeminiProviderChatSession"]
