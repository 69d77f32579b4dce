"""
OpenAI Web provider: a hosted OpenAI-compatible chat completions API.

Initialization is a ``GET /v1/models`` healthcheck with the bearer key.
Chat sessions keep the message history locally and resend it every turn.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Sequence

import aiohttp

from webgate.core.config import OpenAIWebSettings
from webgate.core.exceptions import ProviderError, UpstreamRequestError

from .base import ProviderChatSession, ProviderOutput, WebModelProvider

logger = logging.getLogger("webgate.providers.openai_web")


class OpenAIWebClient:
    """Minimal aiohttp client for ``/v1/models`` and ``/v1/chat/completions``."""

    def __init__(self, settings: OpenAIWebSettings, timeout: float = 120.0):
        self.settings = settings
        self.timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    @property
    def base_url(self) -> str:
        return self.settings.base_url.rstrip("/")

    def _require_key(self) -> str:
        if not self.settings.api_key:
            raise ProviderError(
                message="openai_web.api_key is required for openai-web provider.",
                status_code=503,
            )
        return self.settings.api_key

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={"Authorization": f"Bearer {self._require_key()}"}
            )
        return self._session

    async def healthcheck(self) -> None:
        self._require_key()
        session = await self._get_session()
        try:
            async with session.get(
                f"{self.base_url}/v1/models",
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if response.status != 200:
                    body = await response.text()
                    raise ProviderError(
                        message=f"OpenAI Web initialization failed ({response.status}): {body}",
                        details={"status": response.status},
                        status_code=503,
                    )
        except aiohttp.ClientError as e:
            raise ProviderError(
                message=f"OpenAI Web initialization failed: {e}", cause=e, status_code=503
            )

    async def generate_content(self, model: str, messages: list[dict[str, str]]) -> ProviderOutput:
        self._require_key()
        session = await self._get_session()
        payload = {"model": model, "stream": False, "messages": messages}

        try:
            async with session.post(
                f"{self.base_url}/v1/chat/completions",
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if response.status != 200:
                    body = await response.text()
                    raise UpstreamRequestError(
                        f"OpenAI Web request failed ({response.status}): {body}",
                        status=response.status,
                    )
                data: Any = await response.json()
        except aiohttp.ClientError as e:
            raise UpstreamRequestError(f"OpenAI Web request failed: {e}", cause=e)

        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            text = None
        if not isinstance(text, str):
            raise UpstreamRequestError("OpenAI Web response missing assistant content.")
        return ProviderOutput(text=text)

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None


class OpenAIWebChatSession(ProviderChatSession):
    def __init__(self, client: OpenAIWebClient, model: str):
        self.client = client
        self.model = model
        self.messages: list[dict[str, str]] = []

    async def send_message(self, prompt: str, files: Sequence[str] = ()) -> ProviderOutput:
        history = [*self.messages, {"role": "user", "content": prompt}]
        output = await self.client.generate_content(self.model, history)
        self.messages = [*history, {"role": "assistant", "content": output.text}]
        return output


class OpenAIWebProvider(WebModelProvider):
    """Hosted OpenAI-compatible API."""

    id = "openai-web"
    label = "OpenAI Web"

    def __init__(
        self,
        settings: OpenAIWebSettings,
        config_path: str | Path,
        client: OpenAIWebClient | None = None,
    ):
        super().__init__()
        self.settings = settings
        self.config_path = str(config_path)
        self._client_override = client
        self._client: OpenAIWebClient | None = None

    def is_enabled(self) -> bool:
        return self.settings.enabled

    async def initialize(self) -> bool:
        if not self.settings.enabled:
            self._last_error = f"OpenAI Web is disabled via config: {self.config_path}"
            return False

        await self.close()
        client = self._client_override or OpenAIWebClient(self.settings)
        try:
            await client.healthcheck()
        except Exception as e:
            message = getattr(e, "message", None) or str(e) or "OpenAI Web initialization failed."
            self._last_error = message
            logger.error(f"OpenAI Web initialization failed: {message}")
            await client.close()
            return False

        self._client = client
        self._last_error = None
        return True

    def _require_client(self) -> OpenAIWebClient:
        if self._client is None:
            raise ProviderError(
                message=self._last_error or "OpenAI Web client unavailable", status_code=503
            )
        return self._client

    async def generate_content(
        self,
        prompt: str,
        model: str,
        files: Sequence[str] = (),
        metadata: Sequence[str | None] | None = None,
    ) -> ProviderOutput:
        return await self._require_client().generate_content(
            model, [{"role": "user", "content": prompt}]
        )

    def start_chat(self, model: str) -> ProviderChatSession:
        return OpenAIWebChatSession(self._require_client(), model)

    async def close(self) -> None:
        if self._client is not None:
            client, self._client = self._client, None
            await client.close()


__all__ = ["OpenAIWebClient", "OpenAIWebChatSession", "OpenAIWebProvider"]
