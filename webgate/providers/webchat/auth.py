"""
WebChat Authentication - cookie caching for browser-login credentials.

Provides persistent auth storage the Gemini web client can read cookies from:
- WebChatAuth: Dataclass for cached auth state
- save_auth/load_auth/invalidate_auth: Disk cache operations
- list_accounts: List cached accounts per provider
- read_cached_cookies: The cookie source used when browser cookies are allowed
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from webgate.storage.atomic import atomic_write_json

from .constants import COOKIE_1PSID, COOKIE_1PSIDTS

logger = logging.getLogger("webgate.providers.webchat")

WEBCHAT_CACHE_DIR = Path.home() / ".config" / "webgate" / "webchat_auth"

GEMINI_PROVIDER = "gemini"


@dataclass
class WebChatAuth:
    """Cached authentication state for a webchat provider."""

    provider: str
    cookies: dict[str, str] = field(default_factory=dict)
    user_agent: str = ""
    account_label: str = "default"
    captured_at: float = 0.0
    expires_at: float = 0.0

    @property
    def is_expired(self) -> bool:
        if self.expires_at <= 0:
            return False
        return time.time() >= self.expires_at

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "cookies": self.cookies,
            "user_agent": self.user_agent,
            "account_label": self.account_label,
            "captured_at": self.captured_at,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "WebChatAuth":
        return cls(
            provider=d.get("provider", ""),
            cookies=d.get("cookies", {}) or {},
            user_agent=d.get("user_agent", ""),
            account_label=d.get("account_label", "default"),
            captured_at=d.get("captured_at", 0.0),
            expires_at=d.get("expires_at", 0.0),
        )


def _cache_path(provider: str, account: str = "default", cache_dir: Path | None = None) -> Path:
    return (cache_dir or WEBCHAT_CACHE_DIR) / f"{provider}_{account}.json"


def save_auth(auth: WebChatAuth, cache_dir: Path | None = None) -> Path:
    """Save auth to disk cache."""
    path = _cache_path(auth.provider, auth.account_label, cache_dir)
    atomic_write_json(path, auth.to_dict())
    return path


def load_auth(
    provider: str, account: str = "default", cache_dir: Path | None = None
) -> WebChatAuth | None:
    """Load auth from disk cache. Returns None if missing, unreadable or expired."""
    path = _cache_path(provider, account, cache_dir)
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read cached auth {path}: {e}")
        return None
    if not isinstance(data, dict):
        return None
    auth = WebChatAuth.from_dict(data)
    if auth.is_expired:
        logger.info(f"Cached auth for {provider}/{account} has expired")
        return None
    return auth


def invalidate_auth(provider: str, account: str = "default", cache_dir: Path | None = None) -> bool:
    """Delete cached auth file."""
    path = _cache_path(provider, account, cache_dir)
    if path.exists():
        path.unlink()
        return True
    return False


def list_accounts(provider: str, cache_dir: Path | None = None) -> list[str]:
    """List all cached account labels for a provider."""
    directory = cache_dir or WEBCHAT_CACHE_DIR
    if not directory.exists():
        return []
    prefix = f"{provider}_"
    accounts = []
    for f in directory.iterdir():
        if f.name.startswith(prefix) and f.name.endswith(".json"):
            accounts.append(f.name[len(prefix) : -5])
    return sorted(accounts)


async def read_cached_cookies(
    browser: str, cache_dir: Path | None = None
) -> tuple[str, str] | None:
    """
    Return the ``(__Secure-1PSID, __Secure-1PSIDTS)`` pair captured from a
    browser login, or ``None``.

    The account named after ``browser`` wins over ``default``. Read errors
    are logged and treated as "no cookies".
    """

    def _read() -> tuple[str, str] | None:
        for account in (browser, "default"):
            auth = load_auth(GEMINI_PROVIDER, account, cache_dir)
            if auth is None:
                continue
            psid = auth.cookies.get(COOKIE_1PSID)
            psidts = auth.cookies.get(COOKIE_1PSIDTS)
            if psid and psidts:
                return psid, psidts
        return None

    try:
        return await asyncio.to_thread(_read)
    except OSError as e:
        logger.warning(f"Browser cookie read failed: {e}")
        return None


__all__ = [
    "WEBCHAT_CACHE_DIR",
    "WebChatAuth",
    "save_auth",
    "load_auth",
    "invalidate_auth",
    "list_accounts",
    "read_cached_cookies",
]
