"""
Gemini Web Client
=================

Cookie-authenticated client for the Gemini web app's private RPC.

Flow:
1. Resolve the two session cookies (config, then the cached browser login)
2. Warm up google.com cookies, then fetch the app page for the access token
3. POST form-encoded nested-array payloads to StreamGenerate
4. Decode the nested-array response into candidates

Usage:
    client = GeminiWebClient(settings, config_path)
    await client.init()
    output = await client.generate_content("hello", "gemini-2.5-flash")
    print(output.text)
"""

from __future__ import annotations

import asyncio
import json
import logging
import mimetypes
import re
from pathlib import Path
from typing import Any, Awaitable, Callable, Sequence

from curl_cffi import CurlError, CurlMime
from curl_cffi.requests import AsyncSession

from webgate.core.config import GeminiSettings
from webgate.core.exceptions import (
    ClientNotInitializedError,
    CredentialsMissingError,
    PayloadParseError,
    TokenExtractionError,
    UnsupportedModelError,
    UploadFailedError,
    UpstreamRequestError,
)

from .auth import read_cached_cookies
from .constants import (
    COOKIE_1PSID,
    COOKIE_1PSIDTS,
    DEBUG_INIT_HTML,
    DEFAULT_HEADERS,
    GENERATE_URL,
    INIT_URL,
    MODEL_HEADERS,
    TOKEN_PATTERNS,
    UPLOAD_PUSH_ID,
    UPLOAD_URL,
    WARMUP_URL,
)
from .parsing import ModelOutput, extract_json_from_response, parse_model_output

logger = logging.getLogger("webgate.providers.webchat")

SessionFactory = Callable[[str | None], Any]
CookieSource = Callable[[str], Awaitable[tuple[str, str] | None]]

_TOKEN_RES = [re.compile(p) for p in TOKEN_PATTERNS]


def default_session_factory(proxy: str | None) -> AsyncSession:
    return AsyncSession(impersonate="chrome", proxy=proxy, timeout=120)


def _compact_json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def extract_access_token(html: str) -> str | None:
    """First non-empty match of the known token embeddings."""
    for pattern in _TOKEN_RES:
        match = pattern.search(html)
        if match and match.group(1):
            return match.group(1)
    return None


class GeminiChatSession:
    """Multi-turn conversation bound to one model; threads continuation metadata."""

    def __init__(self, client: "GeminiWebClient", model: str):
        self.client = client
        self.model = model
        self.metadata: list[str | None] = [None, None, None]

    async def send_message(self, prompt: str, files: Sequence[str] = ()) -> ModelOutput:
        output = await self.client.generate_content(prompt, self.model, files, self.metadata)
        meta = output.metadata
        self.metadata = [
            (meta[0] if len(meta) > 0 else None) or None,
            (meta[1] if len(meta) > 1 else None) or None,
            output.rcid or None,
        ]
        return output


class GeminiWebClient:
    """
    Gemini web RPC client.

    Attributes:
        settings: Gemini section of the app config
        config_path: Shown in credential errors so users know what to edit
    """

    def __init__(
        self,
        settings: GeminiSettings,
        config_path: str | Path,
        session_factory: SessionFactory | None = None,
        cookie_source: CookieSource | None = None,
    ):
        self.settings = settings
        self.config_path = str(config_path)
        self._session_factory = session_factory or default_session_factory
        self._cookie_source = cookie_source or read_cached_cookies
        self._sessions: dict[str | None, Any] = {}
        self._cookies: dict[str, str] = {}
        self.access_token = ""

    @property
    def initialized(self) -> bool:
        return bool(self.access_token)

    def _session(self, use_proxy: bool = True) -> Any:
        proxy = self.settings.http_proxy if use_proxy else None
        if proxy not in self._sessions:
            self._sessions[proxy] = self._session_factory(proxy)
        return self._sessions[proxy]

    async def close(self) -> None:
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            await session.close()

    async def _resolve_credentials(self) -> tuple[str, str]:
        psid = self.settings.cookie_1psid
        psidts = self.settings.cookie_1psidts

        if (not psid or not psidts) and self.settings.allow_browser_cookies:
            from_browser = await self._cookie_source(self.settings.browser)
            if from_browser:
                psid, psidts = from_browser

        if not psid or not psidts:
            raise CredentialsMissingError(self.config_path)
        return psid, psidts

    async def _warm_up(self) -> None:
        try:
            response = await self._session().get(
                WARMUP_URL, cookies=dict(self._cookies), allow_redirects=True
            )
        except (CurlError, OSError) as e:
            logger.warning(f"Google warmup failed; continuing without warmup: {e}")
            return

        for key, value in response.cookies.items():
            if key and value:
                self._cookies[key] = value

    async def _fetch_init_page(self, use_proxy: bool) -> Any:
        return await self._session(use_proxy).get(
            INIT_URL,
            headers=DEFAULT_HEADERS,
            cookies=dict(self._cookies),
            allow_redirects=True,
        )

    async def init(self) -> None:
        """Authenticate and extract the access token."""
        psid, psidts = await self._resolve_credentials()
        self._cookies = {COOKIE_1PSID: psid, COOKIE_1PSIDTS: psidts}

        await self._warm_up()

        response = await self._fetch_init_page(use_proxy=True)
        text = response.text
        token = extract_access_token(text)

        if not token and self.settings.http_proxy and self.settings.retry_without_proxy:
            logger.warning("Token not found via proxy path, retrying Gemini init without proxy.")
            try:
                direct = await self._fetch_init_page(use_proxy=False)
            except (CurlError, OSError) as e:
                logger.warning(f"Direct retry failed; keeping proxy response for diagnostics: {e}")
            else:
                response = direct
                text = direct.text
                token = extract_access_token(text)

        if not token:
            if self.settings.debug_save_init_html:
                debug_path = Path.cwd() / DEBUG_INIT_HTML
                await asyncio.to_thread(debug_path.write_text, text, encoding="utf-8")
                logger.warning(f"Saved Gemini init HTML to: {debug_path}")
            raise TokenExtractionError(response.status_code)

        self.access_token = token
        logger.info("Gemini web client initialized.")

    def start_chat(self, model: str) -> GeminiChatSession:
        return GeminiChatSession(self, model)

    async def _upload_file(self, file_path: str) -> str:
        path = Path(file_path)
        data = await asyncio.to_thread(path.read_bytes)
        mime = mimetypes.guess_type(path.name)[0] or "application/octet-stream"

        multipart = CurlMime()
        multipart.addpart(name="file", content_type=mime, filename=path.name, data=data)
        try:
            response = await self._session().post(
                UPLOAD_URL, headers={"Push-ID": UPLOAD_PUSH_ID}, multipart=multipart
            )
        except (CurlError, OSError) as e:
            raise UpstreamRequestError(f"File upload failed: {e}", cause=e)
        finally:
            multipart.close()

        if not 200 <= response.status_code < 300:
            raise UploadFailedError(response.status_code)
        return response.text

    async def _request_generate(self, form: dict[str, str], headers: dict[str, str]) -> list[Any]:
        try:
            response = await self._session().post(
                GENERATE_URL, headers=headers, data=form, cookies=dict(self._cookies)
            )
        except (CurlError, OSError) as e:
            raise UpstreamRequestError(f"Gemini generation request failed: {e}", cause=e)

        if not 200 <= response.status_code < 300:
            raise UpstreamRequestError(
                f"Gemini generation failed with status {response.status_code}",
                status=response.status_code,
            )
        return extract_json_from_response(response.text)

    async def generate_content(
        self,
        prompt: str,
        model: str,
        files: Sequence[str] = (),
        metadata: Sequence[str | None] | None = None,
    ) -> ModelOutput:
        """
        Generate one reply.

        Args:
            prompt: Flattened prompt text
            model: One of the web Gemini model ids
            files: Local paths uploaded before generation
            metadata: Continuation metadata from a previous turn

        Raises:
            ClientNotInitializedError: ``init()`` has not succeeded
            UnsupportedModelError: unknown model id
            UploadFailedError / UpstreamRequestError: HTTP failures
            PayloadParseError: body unparseable on both attempts
        """
        if not self.access_token:
            raise ClientNotInitializedError()

        model_headers = MODEL_HEADERS.get(model)
        if model_headers is None:
            raise UnsupportedModelError(model, list(MODEL_HEADERS))

        file_refs: list[Any] = []
        for file_path in files:
            ref = await self._upload_file(file_path)
            file_refs.append([[ref], Path(file_path).name])

        prompt_part: list[Any] = [prompt, 0, None, file_refs] if file_refs else [prompt]
        payload = [prompt_part, None, list(metadata) if metadata else [None, None, None]]
        form = {
            "at": self.access_token,
            "f.req": _compact_json([None, _compact_json(payload)]),
        }
        headers = {**DEFAULT_HEADERS, **model_headers}

        try:
            response_json = await self._request_generate(form, headers)
        except PayloadParseError:
            logger.warning("Gemini payload parse failed once, retrying request.")
            response_json = await self._request_generate(form, headers)

        return parse_model_output(response_json)


__all__ = [
    "GeminiWebClient",
    "GeminiChatSession",
    "extract_access_token",
    "default_session_factory",
]
